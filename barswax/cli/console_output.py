# barswax/cli/console_output.py
"""
Prints registration summaries to the console for `barswax inspect`.
"""
from rich.console import Console as RichConsole
from rich.table import Table
import structlog

log = structlog.get_logger(__name__)

def print_registrations(wax, console: RichConsole = None):
    """
    Prints one table row per registered partial, helper, decorator and shared
    context key of the given Wax instance.
    """
    console = console or RichConsole()
    engine = wax.handlebars
    rows = [
        ("partial", sorted(getattr(engine, "partials", {}))),
        ("helper", sorted(getattr(engine, "helpers", {}))),
        ("decorator", sorted(getattr(engine, "decorators", {}))),
        ("data", sorted(wax.context)),
    ]
    log.debug("printing_registrations", counts={kind: len(names) for kind, names in rows})

    table = Table(title="barswax registrations")
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    for kind, names in rows:
        for name in names:
            table.add_row(kind, name)
    if not table.row_count:
        console.print("(nothing registered)")
        return
    console.print(table)
