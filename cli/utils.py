import functools
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import click
from catalog.errors import CatalogError, QuotaExceeded, RateLimited
from catalog.sa.database import Database
from catalog.services import CatalogMutationService, CatalogQueryService
from catalog.services.schemas import AuthorView, WorkView, EditionView, BulkAttachResult

user_option = click.option('--user', 'user_id', envvar='CATALOG_USER_ID', required=True,
                           help='Id of the acting user (or set CATALOG_USER_ID)')


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI runs"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@contextmanager
def catalog_services() -> Iterator[Tuple[CatalogMutationService, CatalogQueryService]]:
    """Open a session on the configured database and build the services on it"""
    db = Database()
    db.init_db()
    session = db.get_session()
    try:
        mutations = CatalogMutationService(session)
        yield mutations, CatalogQueryService(session, mutations=mutations)
    finally:
        session.close()


def handle_catalog_errors(func):
    """Print catalog errors in red and exit with status 1 instead of a traceback"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except QuotaExceeded as e:
            click.echo(click.style(f"\n{e} ", fg='red') +
                       click.style(f"(limit {e.max})", fg='yellow'))
        except RateLimited as e:
            click.echo(click.style(f"\n{e}", fg='red'))
        except CatalogError as e:
            click.echo(click.style(f"\n{type(e).__name__}: {e}", fg='red'))
        raise SystemExit(1)
    return wrapper


def print_author(author: AuthorView) -> None:
    origin = f"OpenLibrary {author.source_id}" if not author.manual else "manual"
    click.echo(click.style(author.name, fg='cyan') +
               click.style(f"  [{origin}] ", fg='blue') +
               click.style(author.id, fg='white'))


def print_edition(edition: EditionView, indent: str = '') -> None:
    details = ", ".join(
        str(value) for value in (edition.publish_date or edition.publish_year, edition.language, edition.isbn13)
        if value
    )
    click.echo(indent + click.style(edition.title, fg='cyan') +
               (click.style(f" ({details})", fg='blue') if details else '') +
               click.style(f"  {edition.id}", fg='white'))


def print_work(work: WorkView, status: Optional[str] = None) -> None:
    year = f" ({work.publish_year})" if work.publish_year else ''
    line = click.style(work.title, fg='cyan') + click.style(year, fg='blue')
    if status:
        line += click.style(f" [{status}]", fg='green')
    click.echo(line + click.style(f"  {work.id}", fg='white'))
    if work.primary_edition:
        print_edition(work.primary_edition, indent='    ')


def print_bulk_result(result: BulkAttachResult, verbose: bool = False) -> None:
    """Print the results of a bulk attach"""
    click.echo("\n" + click.style("Results:", fg='blue'))
    click.echo(click.style("Added: ", fg='blue') +
               click.style(str(len(result.added)), fg='green') +
               click.style(" works", fg='blue'))
    click.echo(click.style("Skipped: ", fg='blue') +
               click.style(str(len(result.skipped)), fg='yellow') +
               click.style(" works", fg='blue'))
    if result.skipped and verbose:
        for work_id in result.skipped:
            click.echo(click.style(f"  {work_id}", fg='yellow'))


def print_page(total: int, page: int, size: int) -> None:
    pages = max(1, -(-total // size))
    click.echo(click.style(f"\nPage {page}/{pages}, {total} total", fg='blue'))
