# tests/steps/test_green_ops_co2.py
"""
Testes do Step `green-ops-co2`.

Os testes asseguram que:
- o join em cascata escolhe coeficiente exato, global ou fallback
- a regra de estimativa prioriza custo, depois uso, depois fallback
- tags virtuais são copiadas para `allocation_tags`
- a tabela de coeficientes é mantida em cache
"""

import pytest

try:
    from costflow.core.pipeline.dataset import CO2, RawDataset
    from costflow.steps.emissions import (
        DEFAULT_COEFFICIENTS,
        EmissionCoefficient,
        GreenOpsStep,
        estimate_kg_co2,
        load_coefficients,
    )
    from costflow.steps.emissions.co2 import CACHE_KEY
    from costflow.steps.tags import TagCondition, TagRule, VirtualTagsStep
except Exception as e:  # noqa: BLE001
    GreenOpsStep = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing green-ops-co2 step. Import error: {_IMPORT_ERR}")


def _by_resource(dataset):
    return {e.resource_id: e for e in dataset.get_enrichment(CO2)}


def test_cascading_match_levels(ctx, billing_dataset):
    _require_imports()
    step = GreenOpsStep()
    out = step.execute(billing_dataset, ctx)
    estimates = _by_resource(out)

    assert estimates["i-dev-1"].match_level == "exact"
    assert estimates["i-dev-1"].estimated_kg_co2 == pytest.approx(10.0 * 0.45)
    assert estimates["i-dev-1"].confidence == pytest.approx(0.8)
    assert estimates["i-dev-1"].coefficient_source == "cloud_carbon_footprint"

    assert estimates["i-gpu-1"].match_level == "exact"
    assert estimates["i-gpu-1"].estimated_kg_co2 == pytest.approx(100.0 * 0.25)

    assert estimates["bucket-logs"].match_level == "global"
    assert estimates["bucket-logs"].estimated_kg_co2 == pytest.approx(4.0 * 0.15)
    assert estimates["bucket-logs"].region == "us-west-2"

    assert estimates["sm-endpoint-1"].match_level == "fallback"
    assert estimates["sm-endpoint-1"].estimated_kg_co2 == pytest.approx(6.0 * 0.5)
    assert estimates["sm-endpoint-1"].confidence == pytest.approx(0.3)
    assert estimates["sm-endpoint-1"].coefficient_source == "estimated"

    assert step.validate(out) is True


def test_estimate_rule():
    _require_imports()
    assert estimate_kg_co2(10, 5, 0.2, 3.0) == pytest.approx(2.0)
    assert estimate_kg_co2(10, 5, 0.0, 3.0) == pytest.approx(15.0)
    assert estimate_kg_co2(10, 5, None, None) == pytest.approx(5.0)
    assert estimate_kg_co2(0, 5, None, None) == 0


def test_usage_based_coefficient(ctx):
    _require_imports()
    coefficient = EmissionCoefficient(
        id="gcp-bq",
        provider="gcp",
        service_name="BigQuery",
        region="global",
        kg_co2_per_cost=0.0,
        kg_co2_per_unit=0.01,
        unit_type="TB",
        confidence=0.5,
    )
    data = RawDataset.from_records(
        [{"ResourceId": "bq-1", "ServiceName": "BigQuery", "RegionName": "US", "BilledCost": 50, "UsageQuantity": 200}]
    )
    (estimate,) = GreenOpsStep(coefficients=[coefficient]).execute(data, ctx).get_enrichment(CO2)
    assert estimate.estimated_kg_co2 == pytest.approx(2.0)
    assert estimate.match_level == "global"


def test_zero_estimates_are_dropped(ctx):
    _require_imports()
    data = RawDataset.from_records(
        [
            {"ResourceId": "free", "ServiceName": "x", "RegionName": "r", "BilledCost": 0, "UsageQuantity": 0},
            {"ResourceId": "bad", "ServiceName": "x", "RegionName": "r", "BilledCost": "n/a", "UsageQuantity": None},
        ]
    )
    assert GreenOpsStep().execute(data, ctx).get_enrichment(CO2) == ()


def test_integer_resource_ids_keep_their_text(ctx):
    _require_imports()
    data = RawDataset.from_records(
        [
            {"ResourceId": 1, "ServiceName": "Custom", "RegionName": "us-east-1", "BilledCost": 2, "UsageQuantity": None},
            {"ResourceId": None, "ServiceName": "Custom", "RegionName": "us-east-1", "BilledCost": 4, "UsageQuantity": None},
        ]
    )
    estimates = _by_resource(GreenOpsStep().execute(data, ctx))

    assert set(estimates) == {"1", "unknown"}
    assert estimates["1"].estimated_kg_co2 == pytest.approx(2 * 0.5)
    assert estimates["unknown"].estimated_kg_co2 == pytest.approx(4 * 0.5)


def test_empty_dataset(ctx, raw_dataset):
    _require_imports()
    out = GreenOpsStep().execute(raw_dataset, ctx)
    assert out.get_enrichment(CO2) == ()


def test_allocation_tags_from_virtual_tags(ctx, billing_dataset):
    _require_imports()
    rule = TagRule(
        id="team",
        name="team",
        condition=TagCondition(type="account_id", operator="equals", value="111"),
        tags={"CostCenter": "Platform"},
    )
    tagged = VirtualTagsStep(rules=[rule]).execute(billing_dataset, ctx)
    estimates = _by_resource(GreenOpsStep().execute(tagged, ctx))

    assert dict(estimates["i-dev-1"].allocation_tags) == {"CostCenter": "Platform"}
    assert dict(estimates["bucket-logs"].allocation_tags) == {"CostCenter": "Platform"}
    assert dict(estimates["i-gpu-1"].allocation_tags) == {}


def test_coefficients_are_cached(ctx, billing_dataset):
    _require_imports()
    GreenOpsStep().execute(billing_dataset, ctx)
    cached = ctx.cache.get(CACHE_KEY)
    assert [c["id"] for c in cached] == [c.id for c in DEFAULT_COEFFICIENTS]

    # com o cache preenchido, coeficientes passados ao Step são ignorados
    cheap = EmissionCoefficient(
        id="cheap",
        provider="aws",
        service_name="Amazon SageMaker",
        region="global",
        kg_co2_per_cost=0.01,
        confidence=1.0,
    )
    estimates = _by_resource(GreenOpsStep(coefficients=[cheap]).execute(billing_dataset, ctx))
    assert estimates["sm-endpoint-1"].match_level == "fallback"


def test_duplicate_coefficients_keep_first(ctx, billing_dataset):
    _require_imports()
    first = EmissionCoefficient(
        id="first", provider="aws", service_name="Amazon SageMaker", region="us-east-1",
        kg_co2_per_cost=1.0, confidence=0.9,
    )
    second = EmissionCoefficient(
        id="second", provider="aws", service_name="Amazon SageMaker", region="us-east-1",
        kg_co2_per_cost=2.0, confidence=0.9,
    )
    estimates = _by_resource(GreenOpsStep(coefficients=[first, second]).execute(billing_dataset, ctx))
    assert estimates["sm-endpoint-1"].estimated_kg_co2 == pytest.approx(6.0)


def test_invalid_coefficient():
    _require_imports()
    with pytest.raises(ValueError):
        EmissionCoefficient(
            id="x", provider="aws", service_name="s", region="global", kg_co2_per_cost=1, confidence=1.5
        )


def test_load_coefficients(tmp_path):
    _require_imports()
    path = tmp_path / "coefficients.json"
    path.write_text(
        '[{"id": "c1", "provider": "aws", "service_name": "Amazon EC2", "region": "us-east-1",'
        ' "kg_co2_per_cost": 0.4, "confidence": 0.8, "updated_at": "2024-02-01T00:00:00Z"}]',
        encoding="utf-8",
    )
    (coef,) = load_coefficients(path)
    assert coef.kg_co2_per_cost == pytest.approx(0.4)
    assert coef.updated_at.isoformat() == "2024-02-01"
    assert coef.source == "estimated"
