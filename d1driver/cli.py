"""CLI interface for d1driver."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple

import click

from .driver import D1Driver
from .exceptions import D1DriverError, ValidationError
from .execution import QueryTranslator, Statement, LocalD1Database

OPERATIONS = ['get', 'create', 'update', 'remove']


def parse_value(raw: str) -> Any:
    """Parse a CLI value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_pairs(pairs: Tuple[str, ...], option: str) -> Dict[str, Any]:
    """Turn ``("col=value", ...)`` into an ordered column map."""
    parsed: Dict[str, Any] = {}
    for pair in pairs:
        column, sep, raw = pair.partition("=")
        column = column.strip()
        if not sep or not column:
            raise ValidationError(
                f"Expected COLUMN=VALUE for {option}, got '{pair}'",
                field_name=option,
                suggestions=[f"Write it as {option} name=value"]
            )
        parsed[column] = parse_value(raw)
    return parsed


def check_options(operation: str, where: Tuple[str, ...], values: Tuple[str, ...],
                  fields: str, soft: bool) -> None:
    """Reject options the operation would otherwise ignore."""
    given = {
        '--where': bool(where),
        '--set': bool(values),
        '--fields': fields != '*',
        '--soft': soft,
    }
    accepted = {
        'get': {'--where', '--fields'},
        'create': {'--set'},
        'update': {'--set', '--where'},
        'remove': {'--where', '--soft'},
    }[operation]

    unused = [option for option, present in given.items() if present and option not in accepted]
    if unused:
        raise ValidationError(
            f"{', '.join(unused)} cannot be used with {operation}",
            operation=operation,
            suggestions=[f"{operation} accepts {', '.join(sorted(accepted))}"]
        )


def build_statement(operation: str, table: str, where: Dict[str, Any],
                    values: Dict[str, Any], fields: str, soft: bool) -> Statement:
    translator = QueryTranslator()
    if operation == 'get':
        return translator.build_select(table, where, fields)
    if operation == 'create':
        return translator.build_insert(table, values)
    if operation == 'update':
        return translator.build_update(table, values, where)
    return translator.build_delete(table, where, soft)


def _setup_logging(verbose: bool, log_queries: bool) -> None:
    if verbose or log_queries:
        logging.basicConfig(
            level=logging.DEBUG if log_queries else logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )


def _report_error(e: D1DriverError, verbose: bool) -> None:
    click.echo(f"\n❌ {e.error_code}: {e.message}", err=True)
    if e.context:
        click.echo(f"📍 Context: {e.context}", err=True)
    if e.suggestions:
        click.echo("\n💡 Suggestions:", err=True)
        for suggestion in e.suggestions:
            click.echo(f"   • {suggestion}", err=True)
    if verbose:
        click.echo(f"\n🔍 Correlation ID: {e.correlation_id}", err=True)


def statement_options(func):
    """Options shared by commands that build a statement."""
    func = click.option('--verbose', '-v', is_flag=True, help='Verbose error output')(func)
    func = click.option('--soft', is_flag=True, help='Soft remove: stamp deletedAt instead of deleting')(func)
    func = click.option('--fields', '-f', default='*', help='Comma-separated projection for get')(func)
    func = click.option('--set', '-s', 'values', multiple=True, help='Entity column, as COLUMN=VALUE')(func)
    func = click.option('--where', '-w', multiple=True, help='Condition, as COLUMN=VALUE (null matches NULL)')(func)
    func = click.argument('table')(func)
    func = click.argument('operation', type=click.Choice(OPERATIONS))(func)
    return func


@click.group()
def cli():
    """d1driver - translate CRUD calls into parameterized SQL."""
    pass


@cli.command()
@statement_options
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']), default='text', help='Output format')
def translate(operation: str, table: str, where: Tuple[str, ...], values: Tuple[str, ...],
              fields: str, soft: bool, verbose: bool, output_format: str):
    """Print the SQL and params generated for an operation."""
    try:
        check_options(operation, where, values, fields, soft)
        statement = build_statement(
            operation, table,
            parse_pairs(where, '--where'),
            parse_pairs(values, '--set'),
            fields, soft
        )
    except D1DriverError as e:
        _report_error(e, verbose)
        raise click.Abort()

    if output_format == 'json':
        click.echo(json.dumps({"sql": statement.sql, "params": statement.params}))
    else:
        click.echo(statement.sql)
        click.echo(f"params: {json.dumps(statement.params)}")


@cli.command(name='exec')
@click.argument('database', type=click.Path())
@statement_options
@click.option('--log-queries/--no-log-queries', default=False, help='Log all SQL statements')
@click.option('--slow-query-ms', default=1000, type=int, help='Slow statement threshold in milliseconds')
@click.option('--strict/--no-strict', default=True, help='Verify placeholder counts before executing')
def exec_command(database: str, operation: str, table: str, where: Tuple[str, ...],
                 values: Tuple[str, ...], fields: str, soft: bool, verbose: bool,
                 log_queries: bool, slow_query_ms: int, strict: bool):
    """Run an operation against a local DuckDB database and print the result."""
    _setup_logging(verbose, log_queries)

    db: Optional[LocalD1Database] = None
    try:
        check_options(operation, where, values, fields, soft)
        conditions = parse_pairs(where, '--where')
        entity = parse_pairs(values, '--set')

        db = LocalD1Database(database)
        driver = D1Driver(db, log_queries=log_queries, slow_query_ms=slow_query_ms, strict=strict)

        if operation == 'get':
            call = driver.get(table, conditions, fields)
        elif operation == 'create':
            call = driver.create(table, entity)
        elif operation == 'update':
            call = driver.update(table, entity, conditions)
        else:
            call = driver.remove(table, conditions, soft)

        result = asyncio.run(call)
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))

    except D1DriverError as e:
        _report_error(e, verbose)
        raise click.Abort()

    except Exception as e:
        click.echo(f"\n❌ Database Error: {e}", err=True)
        if verbose:
            import traceback
            click.echo("\n🔍 Stack trace:", err=True)
            click.echo(traceback.format_exc(), err=True)
        raise click.Abort()

    finally:
        if db is not None:
            db.close()


if __name__ == '__main__':
    cli()
