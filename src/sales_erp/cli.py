"""Interactive command shell for the Sales ERP toolkit.

Records only live for the duration of a session, so the CLI is a read-eval
loop: every line typed at the prompt is split with :mod:`shlex` and parsed by
an argparse sub-command parser. Orchestration in this module is limited to
argparse wiring, translating parsed arguments into business layer calls and
printing the results. Malformed input never reaches the business layer; the
shell reports it and prompts again.
"""

from __future__ import annotations

import argparse
import configparser
import shlex
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, MutableMapping, NoReturn, Optional, Sequence, Tuple

from . import core_logic, log
from .exceptions import SalesErpError, ValidationError
from .models import require_cost, require_email, require_text

PROMPT = "sales> "

SubParsers = argparse._SubParsersAction


class ShellParserExit(Exception):
    """Raised instead of ``SystemExit`` when a shell line cannot be parsed."""

    def __init__(self, status: int, message: Optional[str] = None):
        super().__init__(message or "")
        self.status = status
        self.message = message or ""


class ShellArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports errors without terminating the process."""

    def exit(self, status: int = 0, message: Optional[str] = None) -> NoReturn:
        raise ShellParserExit(status, message)

    def error(self, message: str) -> NoReturn:
        raise ShellParserExit(2, f"{self.prog}: error: {message}")


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a shell sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[SubParsers], argparse.ArgumentParser]
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int]
    ends_session: bool = False


def build_parser() -> argparse.ArgumentParser:
    """Construct the process-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="sales-cli",
        description="Interactive shell managing Sales ERP clients, products and sales.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to searching upwards from the working directory).",
    )
    return parser


def build_shell_parser() -> ShellArgumentParser:
    """Construct the parser applied to every line typed at the prompt."""
    return ShellArgumentParser(prog="sales", add_help=False, description="Sales ERP shell commands.")


def configure_subcommands(parser: argparse.ArgumentParser) -> Mapping[str, CommandSpec]:
    """Wire all shell sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    session_specs = register_session_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values(), *session_specs.values()])


def register_write_commands(subparsers: SubParsers) -> Dict[str, CommandSpec]:
    """Declare mutating commands such as registrations, edits and deletions."""
    specs = {
        "add-client": register_add_client_command(subparsers),
        "edit-client": register_edit_client_command(subparsers),
        "delete-client": register_delete_client_command(subparsers),
        "add-product": register_add_product_command(subparsers),
        "edit-product": register_edit_product_command(subparsers),
        "delete-product": register_delete_product_command(subparsers),
        "add-sale": register_add_sale_command(subparsers),
        "mark-sale": register_mark_sale_command(subparsers),
        "delete-sale": register_delete_sale_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(subparsers: SubParsers) -> Dict[str, CommandSpec]:
    """Declare read-only commands such as lookups, listings and the export."""
    specs = {
        "client": register_lookup_command(
            "client", "Show one client.", "--ci", "numci", run_show_client
        ),
        "clients": register_listing_command("clients", "List all clients.", run_list_clients),
        "product": register_lookup_command(
            "product", "Show one product.", "--product-id", "product_id", run_show_product
        ),
        "products": register_listing_command("products", "List all products.", run_list_products),
        "sale": register_lookup_command("sale", "Show one sale.", "--sale-id", "sale_id", run_show_sale),
        "sales": register_listing_command("sales", "List all sales.", run_list_sales),
        "sales-by-client": register_lookup_command(
            "sales-by-client", "List the sales of one client.", "--ci", "numci", run_sales_by_client
        ),
        "sales-by-product": register_lookup_command(
            "sales-by-product",
            "List the sales of one product.",
            "--product-id",
            "product_id",
            run_sales_by_product,
        ),
        "export": register_export_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_session_commands(subparsers: SubParsers) -> Dict[str, CommandSpec]:
    """Declare commands controlling the shell itself."""
    specs = {
        "help": register_listing_command("help", "Show the available commands.", run_help),
        "quit": CommandSpec(
            name="quit",
            help_text="Leave the shell.",
            register=lambda action: _add_simple_parser(action, "quit", "Leave the shell."),
            execute=run_quit,
            ends_session=True,
        ),
        "exit": CommandSpec(
            name="exit",
            help_text="Leave the shell.",
            register=lambda action: _add_simple_parser(action, "exit", "Leave the shell."),
            execute=run_quit,
            ends_session=True,
        ),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def _add_simple_parser(action: SubParsers, name: str, help_text: str) -> argparse.ArgumentParser:
    parser = action.add_parser(name, help=help_text)
    parser.set_defaults(command=name)
    return parser


def register_add_client_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``add-client``."""
    name = "add-client"
    help_text = "Register a new client."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--name", required=True)
        parser.add_argument("--ci", dest="numci", required=True, help="National ID number, digits only.")
        parser.add_argument("--email", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_client)


def register_edit_client_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``edit-client``."""
    name = "edit-client"
    help_text = "Change the name and/or email of a client."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--ci", dest="numci", required=True)
        parser.add_argument("--name", default=None)
        parser.add_argument("--email", default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_edit_client)


def register_delete_client_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``delete-client``."""
    name = "delete-client"
    help_text = "Delete a client (its sales are kept)."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--ci", dest="numci", required=True)
        parser.add_argument("--yes", action="store_true", help="Skip the confirmation question.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_client)


def register_add_product_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``add-product``."""
    name = "add-product"
    help_text = "Register a new product."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--name", required=True)
        parser.add_argument("--cost", required=True, type=parse_cost)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_product)


def register_edit_product_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``edit-product``."""
    name = "edit-product"
    help_text = "Change the name and/or cost of a product."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--name", default=None)
        parser.add_argument("--cost", default=None, type=parse_cost)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_edit_product)


def register_delete_product_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``delete-product``."""
    name = "delete-product"
    help_text = "Delete a product (its sales are kept)."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--yes", action="store_true", help="Skip the confirmation question.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_product)


def register_add_sale_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``add-sale``."""
    name = "add-sale"
    help_text = "Record the sale of a product to a client."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--ci", dest="numci", required=True)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--sale-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_sale)


def register_mark_sale_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``mark-sale``."""
    name = "mark-sale"
    help_text = "Mark a sale as sold or pending."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--sale-id", required=True)
        status = parser.add_mutually_exclusive_group(required=True)
        status.add_argument("--sold", dest="sold", action="store_true")
        status.add_argument("--pending", dest="sold", action="store_false")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_mark_sale)


def register_delete_sale_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``delete-sale``."""
    name = "delete-sale"
    help_text = "Delete a sale."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--sale-id", required=True)
        parser.add_argument("--yes", action="store_true", help="Skip the confirmation question.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_sale)


def register_lookup_command(
    name: str,
    help_text: str,
    flag: str,
    dest: str,
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int],
) -> CommandSpec:
    """Build the spec of a read command taking a single required key."""

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument(flag, dest=dest, required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=execute)


def register_listing_command(
    name: str,
    help_text: str,
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int],
) -> CommandSpec:
    """Build the spec of a command without arguments."""
    return CommandSpec(
        name=name,
        help_text=help_text,
        register=lambda action: _add_simple_parser(action, name, help_text),
        execute=execute,
    )


def register_export_command(subparsers: SubParsers) -> CommandSpec:
    """Register the parser and executor for ``export``."""
    name = "export"
    help_text = "Write every record to an .xlsx workbook."

    def registrar(action: SubParsers) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--output", type=Path, default=None, help="Target file (defaults to ExportFile).")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_export)


def build_command_table(specs: Iterable[CommandSpec]) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


def dispatch_command(
    context: core_logic.RuntimeContext,
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(context, args)


def parse_cost(text: str) -> Decimal:
    """argparse ``type`` converting a cost argument into a Decimal."""
    try:
        return Decimal(text.strip())
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from exc


def confirm(message: str) -> bool:
    """Ask a yes/no question until the answer is ``y`` or ``n``."""
    while True:
        try:
            answer = input(f"{message} (y/n): ").strip().lower()
        except EOFError:
            return False
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer 'y' or 'n'.")


def _print_records(records: Sequence[object], empty_message: str) -> None:
    if not records:
        print(empty_message)
        return
    for record in records:
        print(record)


def _report(outcome: core_logic.Outcome, success_message: str) -> int:
    """Print a successful outcome; failures were already logged by the BLL."""
    if not outcome.ok:
        return 1
    print(success_message)
    print(outcome.value)
    return 0


def _fields_valid(*checks: Tuple[Optional[object], Callable[[object], object]]) -> bool:
    """Check every supplied edit value before any of them is applied."""
    try:
        for value, check in checks:
            if value is not None:
                check(value)
    except ValidationError as exc:
        log.warning("Nothing was changed: %s", exc)
        return False
    return True


def _confirmed_delete(
    args: argparse.Namespace,
    lookup: core_logic.Outcome,
    delete: Callable[[], core_logic.Outcome],
    label: str,
) -> int:
    if not lookup.ok:
        return 1
    if not args.yes:
        print(f"Found: {lookup.value}")
        if not confirm(f"Delete this {label}?"):
            print("Deletion cancelled.")
            return 0
    return _report(delete(), f"{label.capitalize()} deleted.")


def run_add_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the client registration workflow in the BLL."""
    outcome = core_logic.add_client(context, args.name, args.numci, args.email)
    return _report(outcome, "Client registered.")


def run_edit_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Validate every requested client field, then apply the edits."""
    if args.name is None and args.email is None:
        log.warning("Nothing to edit: pass --name and/or --email")
        return 1
    if not _fields_valid(
        (args.name, lambda value: require_text(value, "name")),
        (args.email, require_email),
    ):
        return 1
    outcome = core_logic.get_client_by_id(context, args.numci)
    if args.name is not None and outcome.ok:
        outcome = core_logic.edit_client_name(context, args.numci, args.name)
    if args.email is not None and outcome.ok:
        outcome = core_logic.edit_client_email(context, args.numci, args.email)
    return _report(outcome, "Client updated.")


def run_delete_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    return _confirmed_delete(
        args,
        core_logic.get_client_by_id(context, args.numci),
        lambda: core_logic.delete_client_by_id(context, args.numci),
        "client",
    )


def run_add_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the product registration workflow in the BLL."""
    outcome = core_logic.add_product(context, args.product_id, args.name, args.cost)
    return _report(outcome, "Product registered.")


def run_edit_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Validate every requested product field, then apply the edits."""
    if args.name is None and args.cost is None:
        log.warning("Nothing to edit: pass --name and/or --cost")
        return 1
    if not _fields_valid(
        (args.name, lambda value: require_text(value, "name")),
        (args.cost, require_cost),
    ):
        return 1
    outcome = core_logic.get_product_by_id(context, args.product_id)
    if args.name is not None and outcome.ok:
        outcome = core_logic.edit_product_name(context, args.product_id, args.name)
    if args.cost is not None and outcome.ok:
        outcome = core_logic.edit_product_cost(context, args.product_id, args.cost)
    return _report(outcome, "Product updated.")


def run_delete_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    return _confirmed_delete(
        args,
        core_logic.get_product_by_id(context, args.product_id),
        lambda: core_logic.delete_product_by_id(context, args.product_id),
        "product",
    )


def run_add_sale(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the sale workflow via the BLL."""
    outcome = core_logic.add_sale(context, args.numci, args.product_id, args.sale_id)
    return _report(outcome, "Sale recorded.")


def run_mark_sale(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    outcome = core_logic.set_sale_sold(context, args.sale_id, args.sold)
    return _report(outcome, "Sale updated.")


def run_delete_sale(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    return _confirmed_delete(
        args,
        core_logic.get_sale_by_id(context, args.sale_id),
        lambda: core_logic.delete_sale_by_id(context, args.sale_id),
        "sale",
    )


def run_show_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    outcome = core_logic.get_client_by_id(context, args.numci)
    if not outcome.ok:
        return 1
    print(outcome.value)
    return 0


def run_show_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    outcome = core_logic.get_product_by_id(context, args.product_id)
    if not outcome.ok:
        return 1
    print(outcome.value)
    return 0


def run_show_sale(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    outcome = core_logic.get_sale_by_id(context, args.sale_id)
    if not outcome.ok:
        return 1
    print(outcome.value)
    return 0


def run_list_clients(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _print_records(core_logic.get_all_clients(context), "No clients registered.")
    return 0


def run_list_products(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _print_records(core_logic.get_all_products(context), "No products registered.")
    return 0


def run_list_sales(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _print_records(core_logic.get_all_sales(context), "No sales recorded.")
    return 0


def run_sales_by_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _print_records(core_logic.get_sales_by_client(context, args.numci), f"No sales for client '{args.numci}'.")
    return 0


def run_sales_by_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _print_records(
        core_logic.get_sales_by_product(context, args.product_id),
        f"No sales for product '{args.product_id}'.",
    )
    return 0


def run_export(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the snapshot export workflow."""
    outcome = core_logic.export_snapshot(context, args.output)
    if not outcome.ok:
        return 1
    print(f"Snapshot written to '{outcome.value}'.")
    return 0


def run_help(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    parser = build_shell_parser()
    configure_subcommands(parser)
    print(parser.format_help())
    return 0


def run_quit(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    print("Goodbye.")
    return 0


def run_shell(
    context: core_logic.RuntimeContext,
    parser: argparse.ArgumentParser,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Read, parse and dispatch prompt lines until the session ends.

    The session ends on ``quit``/``exit`` or at end of input and always returns
    exit code ``0``. Lines that cannot be parsed are reported and skipped.
    """
    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            return 0

        try:
            tokens = shlex.split(line)
        except ValueError as error:
            log.warning("Could not read command: %s", error)
            continue
        if not tokens:
            continue

        try:
            args = parser.parse_args(tokens)
        except ShellParserExit as error:
            if error.status:
                log.warning("%s", error.message.strip())
            continue

        dispatch_command(context, args, command_table)
        if command_table[args.command].ends_session:
            return 0


def handle_cli_error(error: Exception) -> int:
    """Convert startup exceptions into user-friendly exit codes."""
    if isinstance(error, (SalesErpError, KeyError, configparser.Error)):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that loads the runtime context and runs the shell."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        context = core_logic.load_runtime_context(getattr(args, "config", None))
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)

    shell_parser = build_shell_parser()
    command_table = configure_subcommands(shell_parser)
    print(f"{context.settings.store_name}: type 'help' for commands, 'quit' to leave.")
    return run_shell(context, shell_parser, command_table)
