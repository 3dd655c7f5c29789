# tests/conftest.py
"""
Fixtures compartilhados para testes do CostFlow.

Este módulo define fixtures reutilizáveis que fornecem:
- relógio manual injetável (caches e Engine)
- query handle SQLite em memória
- cache volátil sem thread de varredura
- contexto de execução controlado (RunContext)
- Steps dummy para testes estruturais do Engine
- dataset de billing pequeno e determinístico

Decisões arquiteturais:
    - Steps dummy utilizam duck typing em vez de herança
    - Nenhuma fixture depende de rede ou de arquivos fora de tmp_path
    - O tempo é controlado por `ManualClock` sempre que possível

Invariantes:
    - Nenhuma fixture executa pipeline real
    - Recursos abertos (SQLite, cache) são fechados ao final do teste
"""

from datetime import datetime, timezone

import pytest


class ManualClock:
    """Relógio controlado pelo teste (segundos)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def query_handle():
    from costflow.core.query.sqlite import SQLiteQueryHandle

    handle = SQLiteQueryHandle()
    yield handle
    handle.close()


@pytest.fixture
def memory_cache(clock):
    from costflow.core.cache.memory import InMemoryCacheProvider

    cache = InMemoryCacheProvider(sweep_interval=0, clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def make_ctx(query_handle, memory_cache):
    """
    Factory de RunContext determinístico.

    `run_id` e `created_at` são fixos; inputs, caller e org podem ser
    sobrescritos por teste.
    """
    from costflow.core.pipeline.context import RunContext, RunInputs

    def _make(**overrides):
        params = dict(
            run_id="run-test-001",
            query=query_handle,
            cache=memory_cache,
            inputs=RunInputs(source_id="src-1", file_name="billing.csv", billing_period="2024-01"),
            caller_id="user-1",
            org_id="org-1",
            created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        )
        params.update(overrides)
        return RunContext(**params)

    return _make


@pytest.fixture
def ctx(make_ctx):
    return make_ctx()


@pytest.fixture
def raw_dataset():
    """Dataset vazio: suficiente para testes do Engine com Steps dummy."""
    from costflow.core.pipeline.dataset import RawDataset

    return RawDataset.from_records([], columns=["ResourceId"])


@pytest.fixture
def billing_rows():
    return [
        {
            "ResourceId": "i-dev-1",
            "ServiceName": "Amazon Elastic Compute Cloud",
            "RegionName": "us-east-1",
            "AccountId": "111",
            "ResourceName": "dev-api",
            "InstanceType": "m5.large",
            "BilledCost": 10.0,
            "UsageQuantity": 24.0,
        },
        {
            "ResourceId": "i-gpu-1",
            "ServiceName": "Amazon Elastic Compute Cloud",
            "RegionName": "eu-west-1",
            "AccountId": "222",
            "ResourceName": "model-training-box",
            "InstanceType": "p3.2xlarge",
            "BilledCost": 100.0,
            "UsageQuantity": 10.0,
        },
        {
            "ResourceId": "bucket-logs",
            "ServiceName": "Amazon Simple Storage Service",
            "RegionName": "us-west-2",
            "AccountId": "111",
            "ResourceName": "logs",
            "InstanceType": None,
            "BilledCost": 4.0,
            "UsageQuantity": 500.0,
        },
        {
            "ResourceId": "sm-endpoint-1",
            "ServiceName": "Amazon SageMaker",
            "RegionName": "us-east-1",
            "AccountId": "333",
            "ResourceName": "churn-inference-endpoint",
            "InstanceType": "ml.m5.xlarge",
            "BilledCost": 6.0,
            "UsageQuantity": 3.0,
        },
    ]


@pytest.fixture
def billing_dataset(billing_rows):
    from costflow.core.pipeline.dataset import RawDataset

    return RawDataset.from_records(billing_rows, provider="aws", format="focus")


@pytest.fixture
def DummyStep():
    """
    Fixture factory que fornece uma implementação mínima e duck-typed de um Step.

    O Step dummy:
    - expõe `name` e `dependencies`
    - registra a própria chamada em `calls` (lista compartilhada opcional)
    - anexa o próprio nome à coleção `trail` do dataset
    - falha com RuntimeError quando `fail=True`

    Returns:
        type: Classe _DummyStep que pode ser instanciada pelos testes.
    """

    class _DummyStep:
        def __init__(self, name, dependencies=None, *, fail=False, calls=None, description=None):
            self.name = name
            self.dependencies = list(dependencies or [])
            self.fail = fail
            self.calls = calls if calls is not None else []
            self.description = description

        def execute(self, data, ctx):
            self.calls.append(self.name)
            if self.fail:
                raise RuntimeError(f"{self.name} exploded")
            return data.with_enrichment("trail", [self.name])

    return _DummyStep
