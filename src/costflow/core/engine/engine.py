# src/costflow/core/engine/engine.py
"""
Engine de execução do pipeline do CostFlow.

O Engine registra Steps, constrói a ordem de execução (planner) e encadeia
um único dataset corrente através dos Steps, agregando um `PipelineResult`.

Política de falha:
    - continue_on_error=False (padrão): a primeira falha aborta a run; o
      Step que falhou e todos os seguintes são reportados como pulados
    - continue_on_error=True: a falha vira warning
      ("Step <nome> failed: <mensagem>"), o Step é pulado e o dataset
      corrente segue inalterado para o próximo Step

Decisões arquiteturais:
    - `_run_step` é o ÚNICO ponto onde exceções de Steps são capturadas;
      cada execução vira um `StepOutcome` e a política acima é aplicada
      sobre esses valores
    - O deadline da run (`timeout_ms`) é verificado antes de cada Step.
      Um Step em andamento não é interrompido, mas nenhum outro começa
      depois do deadline. Estourar o deadline aborta a run mesmo com
      continue_on_error
    - A ordem construída é memorizada até o próximo `register`
    - Steps desabilitados via config (`steps.<nome>.enabled: false`) são
      pulados sem executar

Invariantes:
    - `steps_executed` e `steps_skipped` particionam a ordem construída
    - Falha no build reporta todos os Steps registrados como pulados
    - Warnings adicionados pelos Steps (`ctx.add_warning`) entram em
      `metadata.warnings`
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from costflow.core.config.errors import InvalidEngineConfigError
from costflow.core.config.hashing import compute_config_hash
from costflow.core.errors import ErrorPayload, payload_from_exception
from costflow.core.exceptions import (
    DependencyError,
    PipelineError,
    UnknownDependencyError,
    pipeline_timeout,
    step_execution_failed,
    step_inputs_missing,
    validation_failed,
)
from costflow.core.pipeline.context import RunContext
from costflow.core.pipeline.dataset import EnrichedDataset, RawDataset
from costflow.core.pipeline.registry import StepRegistry
from costflow.core.pipeline.step import get_dependencies, get_validator
from costflow.core.pipeline.types import ExecutionMetadata, PipelineResult, StepOutcome

from .planner import plan_execution

ENGINE_LOG_ID = "engine"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuração do Engine.

    Campos:
        - continue_on_error: política de falha
        - timeout_ms: deadline da run em milissegundos (None = sem limite)
        - steps: opções por Step (`enabled` e parâmetros específicos)
    """
    continue_on_error: bool = False
    timeout_ms: Optional[float] = None
    steps: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    source: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, config: Optional[Mapping[str, Any]]) -> "PipelineConfig":
        """
        Resolve as seções `engine` e `steps` de uma configuração carregada.

        Raises:
            InvalidEngineConfigError: seção malformada ou valor fora do domínio.
        """
        config = dict(config or {})

        engine = config.get("engine") or {}
        if not isinstance(engine, Mapping):
            raise InvalidEngineConfigError("'engine' section must be a mapping")

        continue_on_error = engine.get("continue_on_error", False)
        if not isinstance(continue_on_error, bool):
            raise InvalidEngineConfigError("engine.continue_on_error must be a boolean")

        timeout_ms = engine.get("timeout_ms")
        if timeout_ms is not None:
            if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)):
                raise InvalidEngineConfigError("engine.timeout_ms must be a number or null")
            if timeout_ms < 0:
                raise InvalidEngineConfigError("engine.timeout_ms must be >= 0")

        steps = config.get("steps") or {}
        if not isinstance(steps, Mapping) or not all(
            isinstance(v, Mapping) or v is None for v in steps.values()
        ):
            raise InvalidEngineConfigError("'steps' section must map step names to mappings")

        return cls(
            continue_on_error=continue_on_error,
            timeout_ms=timeout_ms,
            steps={name: dict(opts or {}) for name, opts in steps.items()},
            source=config,
        )

    def step_options(self, name: str) -> Dict[str, Any]:
        return dict(self.steps.get(name) or {})

    def is_enabled(self, name: str) -> bool:
        return bool(self.step_options(name).get("enabled", True))

    def to_dict(self) -> Dict[str, Any]:
        if self.source:
            return dict(self.source)
        return {
            "engine": {
                "continue_on_error": self.continue_on_error,
                "timeout_ms": self.timeout_ms,
            },
            "steps": {name: dict(opts) for name, opts in self.steps.items()},
        }


class Engine:
    """Engine canônico do CostFlow (registro + planner + executor)."""

    def __init__(
        self,
        *,
        steps: Sequence[Any] = (),
        config: Union[PipelineConfig, Mapping[str, Any], None] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if isinstance(config, PipelineConfig):
            self.config = config
        else:
            self.config = PipelineConfig.from_dict(config)
        self._clock = clock
        self.registry = StepRegistry()
        for step in steps:
            self.registry.add(step)
        self._order: Optional[List[Any]] = None

    # ------------------------------------------------------------------
    # Registro e planejamento
    # ------------------------------------------------------------------
    def register(self, step: Any) -> "Engine":
        """Registra (ou sobrescreve) um Step e invalida a ordem construída."""
        self.registry.put(step)
        self._order = None
        return self

    def build(self) -> List[str]:
        """
        Constrói (ou reutiliza) a ordem de execução.

        Raises:
            DependencyError: dependência desconhecida ou ciclo.
        """
        return [step.name for step in self._ensure_built()]

    def _ensure_built(self) -> List[Any]:
        if self._order is None:
            self._order = plan_execution(self.registry.list())
        return self._order

    def validate(self) -> List[str]:
        """
        Lista problemas estruturais do pipeline; nunca levanta exceção.

        Dependências ausentes são todas listadas. Ciclos são procurados
        também quando há ausências, entre os Steps cujas dependências
        (transitivas) estão registradas; um ciclo que passa por um Step
        com dependência ausente não é reportado.
        """
        problems: List[str] = []
        try:
            self.build()
        except UnknownDependencyError:
            try:
                plan_execution(self._resolvable_steps())
            except DependencyError as e:
                problems.append(str(e))
        except DependencyError as e:
            problems.append(str(e))

        for step in self.registry.list():
            for dep in get_dependencies(step):
                if dep not in self.registry:
                    problems.append(f"Step '{step.name}' depends on missing step '{dep}'")
        return problems

    def _resolvable_steps(self) -> List[Any]:
        steps = {step.name: step for step in self.registry.list()}
        pruned = True
        while pruned:
            pruned = False
            for name in list(steps):
                if any(dep not in steps for dep in get_dependencies(steps[name])):
                    del steps[name]
                    pruned = True
        return list(steps.values())

    def get_stats(self) -> Dict[str, Any]:
        try:
            order = self.build()
        except DependencyError:
            order = []
        return {
            "total_steps": len(self.registry),
            "execution_order": order,
            "steps": [
                {
                    "name": step.name,
                    "description": getattr(step, "description", None),
                    "dependencies": get_dependencies(step),
                    "has_validator": get_validator(step) is not None,
                }
                for step in self.registry.list()
            ],
        }

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def _run_step(self, step: Any, data: Any, ctx: RunContext) -> StepOutcome:
        name = step.name
        ctx.log(step_id=name, level="info", message="step started")
        started = self._clock()
        try:
            missing = ctx.inputs.missing(list(getattr(step, "required_inputs", None) or []))
            if missing:
                raise step_inputs_missing(step=name, missing=missing)

            output = step.execute(data, ctx)

            validator = get_validator(step)
            if validator is not None and not validator(output):
                raise validation_failed(step=name)

        except PipelineError as e:
            error = payload_from_exception(e)
        except Exception as e:
            error = payload_from_exception(step_execution_failed(step=name, exc=e))
        else:
            duration_ms = (self._clock() - started) * 1000
            ctx.log(step_id=name, level="info", message="step finished", duration_ms=duration_ms)
            return StepOutcome.success(name, output, duration_ms=duration_ms)

        duration_ms = (self._clock() - started) * 1000
        ctx.log(
            step_id=name,
            level="error",
            message=error.message,
            error_type=error.type,
            duration_ms=duration_ms,
        )
        return StepOutcome.failure(name, error, duration_ms=duration_ms)

    def _result(
        self,
        *,
        ctx: RunContext,
        started: float,
        success: bool,
        executed: List[str],
        skipped: List[str],
        warnings: List[str],
        outcomes: Dict[str, StepOutcome],
        data: Any = None,
        error: Optional[str] = None,
        error_details: Optional[ErrorPayload] = None,
    ) -> PipelineResult:
        duration_ms = (self._clock() - started) * 1000
        ctx.log(
            step_id=ENGINE_LOG_ID,
            level="info" if success else "error",
            message="run finished" if success else (error or "run failed"),
            steps_executed=len(executed),
            steps_skipped=len(skipped),
            duration_ms=duration_ms,
        )
        return PipelineResult(
            success=success,
            data=data,
            error=error,
            error_details=error_details,
            outcomes=outcomes,
            metadata=ExecutionMetadata(
                run_id=ctx.run_id,
                duration_ms=duration_ms,
                steps_executed=executed,
                steps_skipped=skipped,
                warnings=warnings,
                config_hash=compute_config_hash(self.config.to_dict()),
            ),
        )

    def execute(self, raw: RawDataset, ctx: RunContext) -> PipelineResult:
        started = self._clock()
        deadline = None
        if self.config.timeout_ms is not None:
            deadline = started + self.config.timeout_ms / 1000

        executed: List[str] = []
        skipped: List[str] = []
        warnings: List[str] = []
        outcomes: Dict[str, StepOutcome] = {}

        ctx.log(step_id=ENGINE_LOG_ID, level="info", message="run started", steps=len(self.registry))

        try:
            ordered = self._ensure_built()
        except DependencyError as e:
            for name in self.registry.names():
                outcomes[name] = StepOutcome.skipped(name, "skipped: pipeline build failed")
            return self._result(
                ctx=ctx,
                started=started,
                success=False,
                executed=executed,
                skipped=self.registry.names(),
                warnings=warnings,
                outcomes=outcomes,
                error=str(e),
                error_details=payload_from_exception(e),
            )

        current: Any = EnrichedDataset.from_raw(raw)

        for index, step in enumerate(ordered):
            name = step.name

            if not self.config.is_enabled(name):
                outcomes[name] = StepOutcome.skipped(name, "skipped by config")
                skipped.append(name)
                ctx.log(step_id=name, level="info", message="skipped by config")
                continue

            now = self._clock()
            if deadline is not None and now >= deadline:
                timeout = pipeline_timeout(
                    step=name,
                    timeout_ms=self.config.timeout_ms,
                    elapsed_ms=(now - started) * 1000,
                )
                for rest in ordered[index:]:
                    outcomes[rest.name] = StepOutcome.skipped(rest.name, "skipped: run deadline exceeded")
                    skipped.append(rest.name)
                return self._result(
                    ctx=ctx,
                    started=started,
                    success=False,
                    executed=executed,
                    skipped=skipped,
                    warnings=warnings,
                    outcomes=outcomes,
                    error=timeout.message,
                    error_details=payload_from_exception(timeout),
                )

            outcome = self._run_step(step, current, ctx)
            outcomes[name] = outcome
            warnings.extend(ctx.warnings_for(name))

            if outcome.ok:
                current = outcome.value
                executed.append(name)
                continue

            skipped.append(name)
            message = outcome.error.message if outcome.error else outcome.summary

            if self.config.continue_on_error:
                warnings.append(f"Step {name} failed: {message}")
                continue

            for rest in ordered[index + 1:]:
                outcomes[rest.name] = StepOutcome.skipped(rest.name, "skipped: pipeline aborted")
                skipped.append(rest.name)
            return self._result(
                ctx=ctx,
                started=started,
                success=False,
                executed=executed,
                skipped=skipped,
                warnings=warnings,
                outcomes=outcomes,
                error=f"Pipeline failed at step: {name}",
                error_details=outcome.error,
            )

        return self._result(
            ctx=ctx,
            started=started,
            success=True,
            executed=executed,
            skipped=skipped,
            warnings=warnings,
            outcomes=outcomes,
            data=current,
        )
