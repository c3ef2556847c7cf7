import asyncio
import click
import logging
import signal
from pathlib import Path
from pydantic import BaseModel

from taoflow.application.approval.audit_log import AuditSink, InMemoryAuditLog
from taoflow.application.config_loader import load_config
from taoflow.application.config_models import EngineConfig
from taoflow.domain.errors import ExecutionCancelled
from taoflow.domain.models.tao import ExecutionResult
from taoflow.interface.cli.output_models import (
    AuditSummary,
    RuleSummary,
    RulesOutput,
    RunOutput,
    StrategiesOutput,
)

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_CANCELLED = 3


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields.
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _load_config(ctx: click.Context, **overrides) -> EngineConfig:
    cfg = load_config(project_root=Path.cwd(), user_home=Path.home(), overrides=overrides)
    _configure_logging(cfg.debug_mode)
    return cfg


def _build_engine(
    cfg: EngineConfig,
    *,
    audit_sink: AuditSink | None = None,
    interactive: bool = True,
    events: bool = False,
):
    from taoflow.application.approval import ApprovalGate
    from taoflow.application.workflow_engine import WorkflowEngine
    from taoflow.domain.events import StderrEventObserver, WorkflowEventEmitter
    from taoflow.domain.strategies import register_builtin_strategies
    from taoflow.interface.cli.console_presenter import ConsolePresenter

    emitter = WorkflowEventEmitter()
    if events:
        emitter.subscribe(StderrEventObserver())

    gate = ApprovalGate(
        cfg,
        presenter=ConsolePresenter() if interactive else None,
        audit_sink=audit_sink,
        event_emitter=emitter,
    )
    engine = WorkflowEngine(approval_gate=gate, config=cfg, event_emitter=emitter)
    register_builtin_strategies(engine)
    return engine


async def _run_workflow(
    cfg: EngineConfig,
    strategy_name: str,
    prompt: str,
    *,
    events: bool = False,
    audit_sink: AuditSink | None = None,
) -> ExecutionResult:
    from taoflow.domain.cancellation import CancellationToken
    from taoflow.domain.models.strategy_request import StrategyRequest
    from taoflow.interface.cli.progress_sink import StderrProgressSink

    engine = _build_engine(cfg, audit_sink=audit_sink, events=events)
    token = CancellationToken()
    loop = asyncio.get_running_loop()

    def _on_interrupt() -> None:
        click.echo("Cancellation requested; stopping after the current iteration", err=True)
        token.cancel("Interrupted")

    # Ctrl-C becomes a cooperative cancellation request.
    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
        interrupt_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        interrupt_installed = False

    try:
        strategy = engine.create_strategy(strategy_name, StrategyRequest(prompt=prompt))
        if strategy is None:
            available = ", ".join(engine.list_strategies())
            raise ValueError(f"Strategy '{strategy_name}' not found. Available strategies: {available}")
        return await engine.execute_workflow(
            strategy,
            progress=StderrProgressSink(),
            cancellation_token=token,
        )
    finally:
        if interrupt_installed:
            loop.remove_signal_handler(signal.SIGINT)
        engine.dispose()
        engine.event_emitter.clear()


@click.group(help="Think-Act-Observe workflow engine CLI.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, debug: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["debug"] = bool(debug)
    _configure_logging(debug)


@cli.command("run")
@click.argument("prompt", type=str)
@click.option("--strategy", "strategy_name", default="keyword", show_default=True, type=str)
@click.option("--auto-approve", is_flag=True, help="Skip approval for plans that require it.")
@click.option("--timeout-ms", "timeout_ms", required=False, type=int, help="Approval timeout.")
@click.option("--iteration-cap", "iteration_cap", required=False, type=int)
@click.option("--events", is_flag=True, help="Print workflow events to stderr.")
@click.option("--audit", is_flag=True, help="Report the approval audit trail after the run.")
@click.pass_context
def run_cmd(
    ctx: click.Context,
    prompt: str,
    strategy_name: str,
    auto_approve: bool,
    timeout_ms: int | None,
    iteration_cap: int | None,
    events: bool,
    audit: bool,
) -> None:
    audit_log = InMemoryAuditLog() if audit else None
    try:
        cfg = _load_config(
            ctx,
            auto_approve_all=True if auto_approve else None,
            approval_timeout_ms=timeout_ms,
            iteration_cap=iteration_cap,
        )
        result = asyncio.run(
            _run_workflow(cfg, strategy_name, prompt, events=events, audit_sink=audit_log)
        )
    except ExecutionCancelled as e:
        if _get_json_mode(ctx):
            _json_emit(
                RunOutput(
                    exit_code=EXIT_CANCELLED,
                    strategy=strategy_name,
                    cancelled=True,
                    error=str(e),
                )
            )
            raise click.exceptions.Exit(EXIT_CANCELLED)
        click.echo(str(e), err=True)
        raise click.exceptions.Exit(EXIT_CANCELLED)
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(RunOutput(exit_code=EXIT_FAILURE, strategy=strategy_name, error=str(e)))
            raise click.exceptions.Exit(EXIT_FAILURE)
        raise click.ClickException(str(e)) from e

    exit_code = 0 if result.success else EXIT_FAILURE
    failed = [a for a in result.actions if not a.success]
    audit_entries = (
        [
            AuditSummary(
                outcome=entry.outcome.value,
                action_type=entry.action.type,
                request_id=entry.request_id,
                comment=entry.comment,
            )
            for entry in audit_log.entries()
        ]
        if audit_log is not None
        else None
    )

    if _get_json_mode(ctx):
        _json_emit(
            RunOutput(
                exit_code=exit_code,
                strategy=strategy_name,
                success=result.success,
                iterations=result.iterations,
                plan=result.analysis.plan,
                feedback=result.observations.feedback,
                improvements=result.observations.improvements or [],
                actions_total=len(result.actions),
                actions_failed=len(failed),
                audit=audit_entries,
            )
        )
        raise click.exceptions.Exit(exit_code)

    click.echo(f"success={'true' if result.success else 'false'}")
    click.echo(f"iterations={result.iterations}")
    click.echo(f"plan={result.analysis.plan}")
    click.echo(f"feedback={result.observations.feedback}")
    for improvement in result.observations.improvements or []:
        click.echo(f"improvement={improvement}")
    for entry in audit_entries or []:
        click.echo(f"audit={entry.outcome} {entry.action_type}")

    if exit_code != 0:
        raise click.exceptions.Exit(exit_code)


@cli.command("rules")
@click.pass_context
def rules_cmd(ctx: click.Context) -> None:
    from taoflow.application.approval.governance_rules import default_rules

    try:
        cfg = _load_config(ctx)
        rules = [
            RuleSummary(
                id=rule.id,
                priority=rule.priority,
                matches=rule.description,
                requires_approval=rule.requires_approval,
                auto_approve=rule.auto_approve,
                auto_deny=rule.auto_deny,
            )
            for rule in default_rules(auto_approve_read_only=cfg.auto_approve_read_only)
        ]
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(RulesOutput(exit_code=EXIT_FAILURE, error=str(e)))
            raise click.exceptions.Exit(EXIT_FAILURE)
        raise click.ClickException(str(e)) from e

    if _get_json_mode(ctx):
        _json_emit(RulesOutput(exit_code=0, rules=rules))
        raise click.exceptions.Exit(0)

    for rule in rules:
        click.echo(
            f"{rule.priority:>4} {rule.id} matches={rule.matches} "
            f"requires_approval={'true' if rule.requires_approval else 'false'} "
            f"auto_approve={'true' if rule.auto_approve else 'false'}"
        )


@cli.command("strategies")
@click.pass_context
def strategies_cmd(ctx: click.Context) -> None:
    engine = _build_engine(EngineConfig(), interactive=False)
    names = engine.list_strategies()

    if _get_json_mode(ctx):
        _json_emit(StrategiesOutput(exit_code=0, strategies=names))
        raise click.exceptions.Exit(0)

    for name in names:
        click.echo(name)
