import click
from ..utils import (
    user_option, catalog_services, handle_catalog_errors,
    print_author, print_work, print_page,
)


@click.group()
def author():
    """Author management commands"""
    pass


@author.command()
@click.argument('query')
@click.option('--limit', default=10, type=int, help='Maximum number of results (1-50)')
@handle_catalog_errors
def search(query: str, limit: int):
    """Search OpenLibrary for authors

    Example:
        reading-catalog author search "ursula le guin"
    """
    with catalog_services() as (mutations, _):
        results = mutations.search_authors(query, limit=limit)

    if not results:
        click.echo(click.style("\nNo authors found", fg='yellow'))
        return
    for result in results:
        stored = result.id or 'not stored yet'
        click.echo(click.style(result.name, fg='cyan') +
                   click.style(f"  [{result.source_id}] ", fg='blue') +
                   click.style(stored, fg='white'))


@author.command(name='import')
@click.argument('source_id')
@handle_catalog_errors
def import_author(source_id: str):
    """Import an author from OpenLibrary by id (e.g. OL23919A)"""
    with catalog_services() as (mutations, _):
        print_author(mutations.import_author(source_id))


@author.command()
@user_option
@click.argument('name')
@handle_catalog_errors
def create(user_id: str, name: str):
    """Create a manual author owned by the user"""
    with catalog_services() as (mutations, _):
        author = mutations.create_manual_author(user_id, name)
    click.echo(click.style("\nCreated ", fg='green'), nl=False)
    print_author(author)


@author.command()
@user_option
@click.argument('author_id')
@click.confirmation_option(prompt='Delete this author and every library entry that depends on it?')
@handle_catalog_errors
def delete(user_id: str, author_id: str):
    """Delete a manual author owned by the user"""
    with catalog_services() as (mutations, _):
        mutations.delete_manual_author(user_id, author_id)
    click.echo(click.style(f"\nDeleted author {author_id}", fg='green'))


@author.command()
@user_option
@click.option('--author-id', default=None, help='Id of a stored author')
@click.option('--source-id', default=None, help='OpenLibrary id, imported first if needed')
@handle_catalog_errors
def attach(user_id: str, author_id: str, source_id: str):
    """Attach an author to the user's library"""
    if bool(author_id) == bool(source_id):
        raise click.UsageError("Pass exactly one of --author-id or --source-id")

    with catalog_services() as (mutations, _):
        if source_id:
            attached = mutations.attach_author_by_source_id(user_id, source_id)
        else:
            attached = mutations.attach_author(user_id, author_id)
    click.echo(click.style(f"\nAttached author {attached.author_id}", fg='green'))


@author.command()
@user_option
@click.argument('author_id')
@handle_catalog_errors
def detach(user_id: str, author_id: str):
    """Detach an author and all of their works from the user's library"""
    with catalog_services() as (mutations, _):
        work_ids = mutations.detach_author(user_id, author_id)
    click.echo(click.style(f"\nDetached author {author_id}", fg='green') +
               click.style(f" and {len(work_ids)} works", fg='blue'))


@author.command(name='list')
@user_option
@click.option('--page', default=1, type=int, help='Page number')
@click.option('--search', default=None, help='Filter by name')
@click.option('--sort', type=click.Choice(['name_asc', 'created_desc']), default='name_asc')
@handle_catalog_errors
def list_authors(user_id: str, page: int, search: str, sort: str):
    """List the authors in the user's library"""
    with catalog_services() as (_, queries):
        authors = queries.list_user_authors(user_id, page=page, search=search, sort=sort)
        for item in authors.items:
            print_author(item.author)
    print_page(authors.total, authors.page, authors.size)


@author.command()
@user_option
@click.argument('author_id')
@click.option('--page', default=1, type=int, help='Page number')
@click.option('--sort', type=click.Choice(['published_desc', 'title_asc']), default='published_desc')
@click.option('--refresh/--no-refresh', default=False, help='Re-fetch the author from OpenLibrary first')
@handle_catalog_errors
def works(user_id: str, author_id: str, page: int, sort: str, refresh: bool):
    """List an author's works, importing them from OpenLibrary the first time"""
    with catalog_services() as (_, queries):
        result = queries.list_author_works(user_id, author_id, page=page, sort=sort, force_refresh=refresh)
        for work in result.items:
            print_work(work)
    print_page(result.total, result.page, result.size)
