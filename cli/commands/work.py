import click
from catalog.sa.models import UserWorkStatus
from ..utils import (
    user_option, catalog_services, handle_catalog_errors,
    print_work, print_edition, print_bulk_result, print_page,
)

STATUS_CHOICES = click.Choice([status.value for status in UserWorkStatus])
AVAILABILITY = {'yes': True, 'no': False, 'unknown': None}


@click.group()
def work():
    """Work management commands"""
    pass


@work.command(name='import')
@user_option
@click.argument('source_id')
@click.option('--author-id', required=True, help='Stored author to link the work to')
@handle_catalog_errors
def import_work(user_id: str, source_id: str, author_id: str):
    """Import a work and its primary edition from OpenLibrary (e.g. OL45804W)"""
    with catalog_services() as (mutations, _):
        print_work(mutations.import_work(user_id, source_id, author_id))


@work.command()
@user_option
@click.argument('title')
@click.option('--author-id', 'author_ids', multiple=True, required=True, help='Author to link (repeatable)')
@click.option('--year', type=int, default=None, help='First publish year')
@handle_catalog_errors
def create(user_id: str, title: str, author_ids: tuple, year: int):
    """Create a manual work owned by the user"""
    with catalog_services() as (mutations, _):
        print_work(mutations.create_manual_work(user_id, title, list(author_ids), first_publish_year=year))


@work.command()
@user_option
@click.argument('work_id')
@click.option('--status', type=STATUS_CHOICES, default=UserWorkStatus.TO_READ.value)
@handle_catalog_errors
def attach(user_id: str, work_id: str, status: str):
    """Attach a work to the user's library"""
    with catalog_services() as (mutations, _):
        attached = mutations.attach_work(user_id, work_id, status=UserWorkStatus(status))
    click.echo(click.style(f"\nAttached work {attached.work_id}", fg='green') +
               click.style(f" as {attached.status.value}", fg='blue'))


@work.command(name='bulk-attach')
@user_option
@click.argument('work_ids', nargs=-1, required=True)
@click.option('--status', type=STATUS_CHOICES, default=UserWorkStatus.TO_READ.value)
@click.option('--verbose/--no-verbose', default=False, help='List skipped works')
@handle_catalog_errors
def bulk_attach(user_id: str, work_ids: tuple, status: str, verbose: bool):
    """Attach many works at once; already attached ones are skipped"""
    with catalog_services() as (mutations, _):
        result = mutations.bulk_attach_works(user_id, list(work_ids), status=UserWorkStatus(status))
    print_bulk_result(result, verbose)


@work.command(name='bulk-update')
@user_option
@click.argument('work_ids', nargs=-1, required=True)
@click.option('--status', type=STATUS_CHOICES, default=None)
@click.option('--available', type=click.Choice(list(AVAILABILITY)), default=None)
@handle_catalog_errors
def bulk_update(user_id: str, work_ids: tuple, status: str, available: str):
    """Set status and/or availability on many attached works"""
    changes = _changes(status, available)
    with catalog_services() as (mutations, _):
        updated = mutations.bulk_update_works(user_id, list(work_ids), **changes)
    click.echo(click.style(f"\nUpdated {len(updated)} of {len(set(work_ids))} works", fg='green'))


@work.command()
@user_option
@click.argument('work_id')
@click.option('--status', type=STATUS_CHOICES, default=None)
@click.option('--available', type=click.Choice(list(AVAILABILITY)), default=None)
@handle_catalog_errors
def update(user_id: str, work_id: str, status: str, available: str):
    """Set status and/or availability on one attached work"""
    changes = _changes(status, available)
    with catalog_services() as (mutations, _):
        updated = mutations.update_work(user_id, work_id, **changes)
    click.echo(click.style(f"\nUpdated work {updated.work_id}", fg='green') +
               click.style(f" ({updated.status.value})", fg='blue'))


@work.command()
@user_option
@click.argument('work_id')
@handle_catalog_errors
def detach(user_id: str, work_id: str):
    """Remove a work from the user's library"""
    with catalog_services() as (mutations, _):
        mutations.detach_work(user_id, work_id)
    click.echo(click.style(f"\nDetached work {work_id}", fg='green'))


@work.command(name='list')
@user_option
@click.option('--page', default=1, type=int, help='Page number')
@click.option('--status', 'statuses', type=STATUS_CHOICES, multiple=True, help='Filter by status (repeatable)')
@click.option('--available', type=click.Choice(['yes', 'no']), default=None)
@click.option('--author-id', default=None, help='Only works by this author')
@click.option('--search', default=None, help='Filter by title')
@click.option('--sort', type=click.Choice(['published_desc', 'title_asc']), default='published_desc')
@handle_catalog_errors
def list_works(user_id: str, page: int, statuses: tuple, available: str, author_id: str, search: str, sort: str):
    """List the works in the user's library"""
    with catalog_services() as (_, queries):
        result = queries.list_user_works(
            user_id, page=page, status=list(statuses) or None,
            available=AVAILABILITY[available] if available else None,
            sort=sort, author_id=author_id, search=search,
        )
        for item in result.items:
            print_work(item.work, status=item.user_work.status.value)
    print_page(result.total, result.page, result.size)


@work.command()
@user_option
@click.argument('work_id')
@handle_catalog_errors
def editions(user_id: str, work_id: str):
    """List the editions of a work"""
    with catalog_services() as (_, queries):
        for edition in queries.list_work_editions(user_id, work_id):
            print_edition(edition)


@work.command(name='set-primary')
@user_option
@click.argument('work_id')
@click.argument('edition_id')
@handle_catalog_errors
def set_primary(user_id: str, work_id: str, edition_id: str):
    """Make one of a work's editions its primary edition"""
    with catalog_services() as (mutations, _):
        print_work(mutations.set_primary_edition(user_id, work_id, edition_id))


def _changes(status, available) -> dict:
    changes = {}
    if status is not None:
        changes['status'] = UserWorkStatus(status)
    if available is not None:
        changes['available'] = AVAILABILITY[available]
    if not changes:
        raise click.UsageError("Pass --status and/or --available")
    return changes
