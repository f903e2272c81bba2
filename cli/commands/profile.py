import click
from catalog.sa.repositories import ProfileRepository
from ..utils import user_option, catalog_services, handle_catalog_errors


@click.group()
def profile():
    """Profile commands"""
    pass


@profile.command()
@user_option
@click.option('--max-authors', type=int, default=None, help='Author quota (default 500)')
@click.option('--max-works', type=int, default=None, help='Work quota (default 5000)')
def create(user_id: str, max_authors: int, max_works: int):
    """Create a profile for a user"""
    with catalog_services() as (mutations, _):
        try:
            ProfileRepository(mutations.session).create_profile(
                user_id, max_authors=max_authors, max_works=max_works
            )
        except ValueError as e:
            click.echo(click.style(f"\n{e}", fg='yellow'))
            return
    click.echo(click.style(f"\nCreated profile for {user_id}", fg='green'))


@profile.command()
@user_option
@handle_catalog_errors
def show(user_id: str):
    """Show the user's counters and quotas"""
    with catalog_services() as (_, queries):
        view = queries.get_profile(user_id)
    click.echo(click.style("Authors: ", fg='blue') +
               click.style(f"{view.author_count}/{view.max_authors}", fg='cyan'))
    click.echo(click.style("Works: ", fg='blue') +
               click.style(f"{view.work_count}/{view.max_works}", fg='cyan'))
