"""
Pipeline funnel: fixed stage order, empty stages, off-funnel statuses, intake counts
"""

from decimal import Decimal

import pytest

from models.pipeline import PipelineStatus
from services.periods import resolve_period
from services.pipeline_report import (
    FUNNEL_STAGES,
    build_funnel,
    generate_pipeline_report,
    pipeline_recommendations,
    progress_metrics,
    stage_for_status,
)
from tests.conftest import NOW, ago, make_lead, make_opportunity, make_pipeline

STAGE_ORDER = ["lead", "qualification", "production", "shipped", "closed"]


class TestFunnelShape:

    def test_empty_input_emits_every_stage(self):
        funnel = build_funnel([])
        assert [s["stage"] for s in funnel["stages"]] == STAGE_ORDER
        assert all(s["count"] == 0 for s in funnel["stages"])
        assert funnel["offFunnel"] == {}

    def test_stages_have_label_and_color(self):
        for stage in build_funnel([])["stages"]:
            assert stage["label"]
            assert stage["color"].startswith("#")

    def test_only_closed_deals(self):
        """Every stage present even when all deals sit in the last one"""
        pipelines = [
            make_pipeline(1, 1, PipelineStatus.PROJECT_COMPLETE, 10),
            make_pipeline(2, 1, PipelineStatus.PAYMENT_RECEIVED, 20),
        ]
        stages = build_funnel(pipelines)["stages"]

        assert len(stages) == len(FUNNEL_STAGES)
        assert [s["count"] for s in stages] == [0, 0, 0, 0, 2]
        assert stages[-1]["value"] == Decimal("30")

    def test_status_mapping(self):
        assert stage_for_status("ORDER_RECEIVED") == "lead"
        assert stage_for_status("CONTRACT_SIGNING") == "qualification"
        assert stage_for_status("QUALITY_CHECK") == "production"
        assert stage_for_status("DELIVERED") == "shipped"
        assert stage_for_status("ON_HOLD") is None
        assert stage_for_status("SOMETHING_NEW") == "lead"

    def test_off_funnel_counted_separately(self):
        pipelines = [
            make_pipeline(1, 1, PipelineStatus.CANCELLED),
            make_pipeline(2, 1, PipelineStatus.CANCELLED),
            make_pipeline(3, 1, PipelineStatus.ON_HOLD),
            make_pipeline(4, 1, PipelineStatus.SHIPPED),
        ]
        funnel = build_funnel(pipelines)
        assert funnel["offFunnel"] == {"CANCELLED": 2, "ON_HOLD": 1}
        assert sum(s["count"] for s in funnel["stages"]) == 1


class TestPipelineReport:

    @pytest.fixture
    def seeded(self, fake_db):
        fake_db.seed("pipelines", [
            make_pipeline(1, 1, PipelineStatus.ORDER_RECEIVED, 100, created=ago(2)),
            make_pipeline(2, 1, PipelineStatus.PRODUCTION_STARTED, 200, created=ago(4)),
            make_pipeline(3, 2, PipelineStatus.PROJECT_COMPLETE, 300, created=ago(10), updated=ago(1)),
            make_pipeline(4, 2, PipelineStatus.PAYMENT_RECEIVED, 400, created=ago(50), updated=ago(6)),
            make_pipeline(5, 2, PipelineStatus.SHIPPED, 500, created=ago(45)),
        ])
        fake_db.seed("leads", [make_lead(1, 1), make_lead(2, 2), make_lead(3, 2, created=ago(40))])
        fake_db.seed("opportunities", [make_opportunity(1, 1), make_opportunity(2, 2)])
        fake_db.seed("immediate_sales", [
            {"id": 1, "owner_id": 2, "order_value": 80, "created_at": ago(3)},
            {"id": 2, "owner_id": 2, "order_value": 40, "created_at": ago(70)},
        ])
        return fake_db

    @pytest.mark.asyncio
    async def test_admin_report(self, seeded, store, admin):
        report = await generate_pipeline_report(store, admin, resolve_period("month", now=NOW))

        assert [s["stage"] for s in report["stages"]] == STAGE_ORDER
        assert report["totalDeals"] == 3
        assert report["totalValue"] == Decimal("600")
        assert report["closedDeals"] == 1
        assert report["conversionRate"] == round(1 / 3, 4)
        assert report["intake"] == {"leads": 2, "opportunities": 2, "immediateSales": 1, "pipelines": 3}
        print(f"✅ Funnel: {[(s['stage'], s['count']) for s in report['stages']]}")

    @pytest.mark.asyncio
    async def test_velocity_uses_closures_in_window(self, seeded, store, admin):
        """Pipeline 4 created before the window but closed inside it"""
        report = await generate_pipeline_report(store, admin, resolve_period("month", now=NOW))
        assert report["velocity"] == 2.0

    @pytest.mark.asyncio
    async def test_standard_user_scope(self, seeded, store, alice):
        report = await generate_pipeline_report(store, alice, resolve_period("month", now=NOW))

        assert report["totalDeals"] == 2
        assert report["closedDeals"] == 0
        assert report["velocity"] == 0
        assert report["intake"]["leads"] == 1
        assert report["intake"]["immediateSales"] == 0
        for collection in ("pipelines", "leads", "opportunities", "immediate_sales"):
            assert all(q.get("owner_id") == 1 for q in seeded.queries_for(collection))

    @pytest.mark.asyncio
    async def test_empty_store(self, store, admin):
        report = await generate_pipeline_report(store, admin, resolve_period("week", now=NOW))

        assert report["totalDeals"] == 0
        assert report["conversionRate"] == 0
        assert len(report["stages"]) == 5
        assert report["recommendations"] == [
            "Focus on qualifying leads better to improve overall pipeline probability",
            "Pipeline velocity is critically low - focus on moving qualified deals through to close",
        ]


class TestProbabilityAndRecommendations:

    def test_progress_weighted_value(self):
        pipelines = [
            make_pipeline(1, 1, PipelineStatus.PRODUCTION_STARTED, 1000, progress=50),
            make_pipeline(2, 1, PipelineStatus.ORDER_RECEIVED, 200, progress=10),
        ]
        metrics = progress_metrics(pipelines)

        assert metrics["weightedValue"] == Decimal("520.00")
        assert metrics["averageProbability"] == 0.3

    def test_no_pipelines(self):
        assert progress_metrics([]) == {"weightedValue": Decimal("0.00"), "averageProbability": 0}

    @pytest.mark.asyncio
    async def test_report_fields(self, fake_db, store, admin):
        fake_db.seed("pipelines", [
            make_pipeline(1, 1, PipelineStatus.ORDER_RECEIVED, 100, created=ago(2), progress=20),
            make_pipeline(2, 1, PipelineStatus.PRODUCTION_STARTED, 200, created=ago(4), progress=60),
            make_pipeline(3, 2, PipelineStatus.PROJECT_COMPLETE, 300, created=ago(10), updated=ago(1), progress=100),
            make_pipeline(4, 2, PipelineStatus.PAYMENT_RECEIVED, 400, created=ago(50), updated=ago(6)),
        ])
        report = await generate_pipeline_report(store, admin, resolve_period("month", now=NOW))

        assert report["weightedValue"] == Decimal("440.00")
        assert report["averageProbability"] == 0.6
        assert report["velocity"] == 2.0
        assert report["averageDealValue"] == Decimal("350.00")
        assert report["revenueVelocity"] == Decimal("700.00")
        assert report["recommendations"] == [
            "Increase deal momentum to convert more opportunities each month",
        ]
        print(f"✅ Recommendations: {report['recommendations']}")

    def test_stalled_deals_and_early_stage_backlog(self):
        pipelines = [make_pipeline(i, 1, PipelineStatus.ON_HOLD) for i in range(1, 5)]
        pipelines += [make_pipeline(i, 1, PipelineStatus.DELAYED) for i in range(5, 7)]
        pipelines += [make_pipeline(7, 1, PipelineStatus.ORDER_RECEIVED)]

        recommendations = pipeline_recommendations(
            build_funnel(pipelines), 0.9, 5, Decimal("100"), Decimal("50")
        )
        assert recommendations == [
            "Review and re-engage deals on hold to prevent pipeline stagnation",
            "Improve conversion funnel - too many deals stuck in early stages",
        ]

    def test_revenue_velocity_below_deal_size(self):
        recommendations = pipeline_recommendations(
            build_funnel([]), 0.5, 4, Decimal("100"), Decimal("250")
        )
        assert recommendations == [
            "Monthly revenue velocity trails the average deal size - shorten the sales cycle to improve throughput"
        ]
