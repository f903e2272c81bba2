import click
from ..utils import user_option, catalog_services, handle_catalog_errors, print_edition


@click.group()
def edition():
    """Edition management commands"""
    pass


@edition.command(name='import')
@user_option
@click.argument('source_id')
@click.option('--work-id', required=True, help='Stored work the edition belongs to')
@handle_catalog_errors
def import_edition(user_id: str, source_id: str, work_id: str):
    """Import an edition from OpenLibrary by id (e.g. OL7353617M)"""
    with catalog_services() as (mutations, _):
        print_edition(mutations.import_edition(user_id, source_id, work_id))


@edition.command()
@user_option
@click.argument('work_id')
@click.argument('title')
@click.option('--year', 'publish_year', type=int, default=None, help='Publish year')
@click.option('--date', 'publish_date', default=None, help='Publish date as YYYY-MM-DD')
@click.option('--isbn13', default=None)
@click.option('--language', default=None)
@click.option('--cover-url', default=None)
@handle_catalog_errors
def create(user_id: str, work_id: str, title: str, **fields):
    """Create a manual edition under a work"""
    fields = {name: value for name, value in fields.items() if value is not None}
    with catalog_services() as (mutations, _):
        print_edition(mutations.create_manual_edition(user_id, work_id, title, **fields))
