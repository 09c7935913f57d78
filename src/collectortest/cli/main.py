"""CLI entry point for collectortest."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import click

from collectortest import __version__, bootstrap
from collectortest.collectors import load_collector
from collectortest.core.runner import RunOptions, run_plan
from collectortest.load import run_load_test_entry
from collectortest.plan import load_plan
from collectortest.settings import HarnessSettings, load_settings

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

LEGACY_LOAD_TEST_FLAG = "-load-test"
_GLOBAL_VALUE_OPTIONS = {"--settings", "--collector-path"}


class CliState:
    """Holds global CLI state shared by subcommands."""

    def __init__(
        self,
        *,
        verbose: bool,
        settings: HarnessSettings,
        settings_path: Optional[str],
        cli_collector_paths: Tuple[str, ...],
        use_color: bool,
    ) -> None:
        self.verbose = verbose
        self.settings = settings
        self.settings_path = settings_path
        self.cli_collector_paths = cli_collector_paths
        self.collector_paths = tuple(settings.collector_paths) + cli_collector_paths
        self.use_color = use_color

    def child_args(self) -> List[str]:
        """Global options a load-test child needs to resolve the same collector."""
        args: List[str] = []
        if self.verbose:
            args.append("--verbose")
        if not self.use_color:
            args.append("--no-color")
        if self.settings_path:
            args.extend(["--settings", str(Path(self.settings_path).resolve())])
        for path in self.cli_collector_paths:
            args.extend(["--collector-path", str(Path(path).resolve())])
        return args


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"collectortest {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.option("--verbose", is_flag=True, help="Enable verbose diagnostic output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the collectortest version and exit.",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML settings file (defaults to ./collectortest.yaml when present).",
)
@click.option(
    "--collector-path",
    "collector_paths",
    type=click.Path(file_okay=False),
    multiple=True,
    help="Directory searched for <CollectorName>.py (repeatable).",
)
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    settings_path: Optional[str],
    collector_paths: Tuple[str, ...],
    no_color: bool,
) -> None:
    """Conformance test harness for data-source collectors.

    Without a subcommand the full plan in the default plan file is run.
    """

    try:
        settings = load_settings(settings_path)
        bootstrap(settings.plugins)
    except (ValueError, ImportError) as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = CliState(
        verbose=verbose,
        settings=settings,
        settings_path=settings_path,
        cli_collector_paths=tuple(collector_paths),
        use_color=settings.color and not no_color,
    )
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.argument("plan_path", required=False, type=click.Path(dir_okay=False))
@click.option("--report", "report_format", type=click.Choice(["terminal", "json"]), help="Report format.")
@click.option("--report-path", type=str, help="When --report json, write to this path instead of stdout.")
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between load-test resource samples.",
)
@click.pass_obj
def run(
    state: CliState,
    plan_path: Optional[str],
    report_format: Optional[str],
    report_path: Optional[str],
    poll_interval: Optional[float],
) -> None:
    """Run every check in the plan file (default: test_harness.config)."""

    settings = state.settings
    options = RunOptions(
        poll_interval=poll_interval or settings.poll_interval,
        child_args=tuple(state.child_args()),
        report_format=report_format or settings.report_format,
        report_path=report_path or settings.report_path,
        use_color=state.use_color,
        verbose=state.verbose,
    )
    try:
        plan = load_plan(plan_path or settings.plan_file)
        collector = load_collector(plan.collector_name, state.collector_paths, verbose=state.verbose)
        exit_code = run_plan(plan, collector, options)
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc
    raise click.exceptions.Exit(exit_code)


@cli.command("load-test", hidden=True)
@click.argument("index", type=click.IntRange(min=0))
@click.argument("plan_path", required=False, type=click.Path(dir_okay=False))
@click.pass_obj
def load_test(state: CliState, index: int, plan_path: Optional[str]) -> None:
    """Collect the sample of one load-test entry and exit (used by the load-test supervisor)."""

    try:
        plan = load_plan(plan_path or state.settings.plan_file)
        collector = load_collector(plan.collector_name, state.collector_paths, verbose=state.verbose)
        run_load_test_entry(collector, plan, index)
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    args = translate_legacy_args(list(argv) if argv is not None else sys.argv[1:])
    try:
        cli.main(args=args, prog_name="collectortest", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click exits with the command's code
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 0


def translate_legacy_args(argv: Sequence[str]) -> List[str]:
    """Accept ``-load-test N [PLAN]`` and a bare ``PLAN`` argument.

    ``-load-test`` (any case) maps to the hidden ``load-test`` subcommand and a
    leading positional that is not a subcommand is treated as ``run PLAN``.
    """

    args = ["load-test" if arg.lower() == LEGACY_LOAD_TEST_FLAG else arg for arg in argv]
    index = 0
    while index < len(args):
        arg = args[index]
        if arg in _GLOBAL_VALUE_OPTIONS:
            index += 2
            continue
        if arg.startswith("-"):
            index += 1
            continue
        if arg not in cli.commands:
            args.insert(index, "run")
        break
    return args


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
