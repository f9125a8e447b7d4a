"""Shared pytest fixtures and utilities for Sales ERP tests."""

from __future__ import annotations

import argparse
import builtins
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

for candidate in (SRC_DIR, PROJECT_ROOT):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from sales_erp import cli, core_logic, data_manager  # noqa: E402

_CONFIG_TEMPLATE = (
    "[System]\n"
    "StoreName = {store_name}\n"
    "LogLevel = {log_level}\n\n"
    "[Export]\n"
    "ExportFile = {export_file}\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    export_file: str
    store_name: str
    log_level: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture(autouse=True)
def _reset_log_level() -> Iterator[None]:
    """Undo log level changes applied by ``load_runtime_context``."""

    level = core_logic.log.level
    try:
        yield
    finally:
        core_logic.log.setLevel(level)


@pytest.fixture
def config_factory(tmp_path: Path) -> Callable[..., ConfigBundle]:
    """Provide a callable that writes config.ini files on demand."""

    def _create_config(
        *,
        store_name: str = "Test Shop",
        log_level: str = "INFO",
        export_file: str = "exports/snapshot.xlsx",
    ) -> ConfigBundle:
        bundle_dir = tmp_path / f"bundle_{uuid.uuid4().hex}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(store_name=store_name, log_level=log_level, export_file=export_file)
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            export_file=export_file,
            store_name=store_name,
            log_level=log_level,
        )

    return _create_config


@pytest.fixture
def config_file(config_factory: Callable[..., ConfigBundle]) -> Path:
    """Convenience fixture returning only the config path."""

    return config_factory().config_path


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    """Provide default settings whose export target lives in a temp folder."""

    return data_manager.ConfigSettings(
        store_name="Test Shop",
        log_level="INFO",
        export_file=tmp_path / "snapshot.xlsx",
    )


@pytest.fixture
def context(settings: data_manager.ConfigSettings) -> core_logic.RuntimeContext:
    """Return a runtime context with fresh, empty stores."""

    return core_logic.create_runtime_context(settings)


@pytest.fixture
def seeded_context(context: core_logic.RuntimeContext) -> core_logic.RuntimeContext:
    """Runtime context holding two clients, two products and three sales."""

    core_logic.add_client(context, "Ana", "12345678", "ana@test.com")
    core_logic.add_client(context, "Bruno", "87654321", "bruno@test.com")
    core_logic.add_product(context, "P1", "Keyboard", "25.50")
    core_logic.add_product(context, "P2", "Mouse", 10)
    core_logic.add_sale(context, "12345678", "P1", "S1")
    core_logic.add_sale(context, "12345678", "P2", "S2")
    core_logic.add_sale(context, "87654321", "P1", "S3")
    return context


@pytest.fixture
def scripted_input(monkeypatch: pytest.MonkeyPatch) -> Callable[[Iterable[str]], list[str]]:
    """Replace ``input`` with a script; end of script raises ``EOFError``.

    Returns the list that collects every prompt shown to the user.
    """

    def _apply(lines: Iterable[str]) -> list[str]:
        remaining = iter(lines)
        prompts: list[str] = []

        def _fake_input(prompt: str = "") -> str:
            prompts.append(prompt)
            try:
                return next(remaining)
            except StopIteration:
                raise EOFError from None

        monkeypatch.setattr(builtins, "input", _fake_input)
        return prompts

    return _apply


# ---------------------------------------------------------------------------
# CLI layer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shell_parser() -> cli.ShellArgumentParser:
    """Return a fresh shell parser instance for tests."""

    return cli.build_shell_parser()


@pytest.fixture
def subparsers_action(shell_parser: cli.ShellArgumentParser) -> argparse._SubParsersAction:
    """Return the subparser action used to register commands."""

    return shell_parser.add_subparsers(dest="command")


@pytest.fixture
def command_spec_iterable() -> list[cli.CommandSpec]:
    """Provide a list of command specs for indexing tests."""

    def _make_spec(name: str) -> cli.CommandSpec:
        return cli.CommandSpec(
            name,
            f"{name} help",
            lambda subparsers: subparsers.add_parser(name),
            lambda *_: 0,
        )

    return [_make_spec("alpha"), _make_spec("beta"), _make_spec("gamma")]
