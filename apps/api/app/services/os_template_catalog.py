"""Built-in OS templates shipped with the API.

Loaded into os_templates by `seed_builtin_templates` (CLI: seed-templates).
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import Unexpected
from app.services import os_template_service


logger = logging.getLogger(__name__)


def _kpi(key: str, name: str, description: str, formula_hint: str) -> dict:
    return {
        "key": key,
        "name": name,
        "description": description,
        "formula_hint": formula_hint,
        "refresh": "daily",
    }


def _alert(kpi_key, severity, type_, title, description, threshold) -> dict:
    return {
        "kpi_key": kpi_key,
        "severity": severity,
        "type": type_,
        "title": title,
        "description": description,
        "threshold": threshold,
    }


def _dashboards(headline: list[str], line_metric: str, bar_metric: str) -> list[dict]:
    tiles = [
        {"type": "kpi", "kpi_key": kpi_key, "position": {"x": 4 * i, "y": 0, "w": 4, "h": 2}}
        for i, kpi_key in enumerate(headline)
    ]
    tiles += [
        {"type": "chart", "chart_type": "line", "metric": line_metric,
         "position": {"x": 0, "y": 2, "w": 6, "h": 4}},
        {"type": "chart", "chart_type": "bar", "metric": bar_metric,
         "position": {"x": 6, "y": 2, "w": 6, "h": 4}},
    ]
    return [
        {"name": "Founder Command Center", "layout": tiles},
        {
            "name": "Data Trust / Ingestion Health",
            "layout": [{"type": "data_quality", "position": {"x": 0, "y": 0, "w": 12, "h": 6}}],
        },
        {
            "name": "Alerts & Tasks",
            "layout": [
                {"type": "alerts_list", "position": {"x": 0, "y": 0, "w": 6, "h": 8}},
                {"type": "tasks_list", "position": {"x": 6, "y": 0, "w": 6, "h": 8}},
            ],
        },
        {
            "name": "Meeting Mode",
            "layout": [
                {"type": "agenda", "cadence": "weekly",
                 "position": {"x": 0, "y": 0, "w": 12, "h": 10}},
            ],
        },
    ]


def _cadence(daily_title: str, weekly_title: str, monthly_title: str, **daily_overrides) -> list[dict]:
    daily_rules = {
        "include_alerts": {"severity": ["critical", "high"]},
        "include_tasks": {"state": ["open", "in_progress"], "due_within_days": 1},
        "include_kpis": {"trend": "negative"},
    }
    daily_rules.update(daily_overrides)
    return [
        {"cadence": "daily", "title": daily_title, "rules": daily_rules},
        {
            "cadence": "weekly",
            "title": weekly_title,
            "rules": {
                "include_alerts": {"severity": ["critical", "high", "medium"]},
                "include_tasks": {"state": ["open", "in_progress"], "due_within_days": 7},
                "include_kpis": {"trend": "negative"},
                "include_variances": True,
            },
        },
        {
            "cadence": "monthly",
            "title": monthly_title,
            "rules": {
                "include_alerts": {"severity": ["critical", "high"]},
                "include_tasks": {"state": ["open", "in_progress"]},
                "include_kpis": {"all": True},
                "include_variances": True,
            },
        },
    ]


CONSTRUCTION_OPS = {
    "key": "construction_ops",
    "name": "Construction Ops OS",
    "description": (
        "Operating System template for construction companies with project "
        "tracking, safety metrics, and resource management."
    ),
    "version": 1,
    "template_json": {
        "kpis": [
            _kpi("project_margin", "Project Margin %",
                 "Average margin across active projects",
                 "(Revenue - Costs) / Revenue * 100"),
            _kpi("on_time_completion", "On-Time Completion Rate",
                 "Percentage of projects completed on or before deadline",
                 "Completed On Time / Total Completed * 100"),
            _kpi("safety_incidents", "Safety Incidents (30d)",
                 "Number of safety incidents in the last 30 days",
                 "COUNT(incidents WHERE date >= NOW() - 30 days)"),
            _kpi("equipment_utilization", "Equipment Utilization %",
                 "Percentage of time equipment is actively in use",
                 "Hours Used / Hours Available * 100"),
            _kpi("labor_cost_variance", "Labor Cost Variance",
                 "Difference between budgeted and actual labor costs",
                 "Actual Labor Cost - Budgeted Labor Cost"),
        ],
        "dashboards": _dashboards(
            ["project_margin", "on_time_completion", "safety_incidents"],
            "project_margin",
            "equipment_utilization",
        ),
        "alerts": [
            _alert("project_margin", "high", "threshold", "Project Margin Below Target",
                   "Project margin has fallen below 15% threshold",
                   {"operator": "<", "value": 15}),
            _alert("on_time_completion", "medium", "threshold",
                   "On-Time Completion Rate Declining",
                   "On-time completion rate is below 80%",
                   {"operator": "<", "value": 80}),
            _alert("safety_incidents", "critical", "threshold", "Safety Incident Detected",
                   "A safety incident has been reported",
                   {"operator": ">", "value": 0}),
            _alert("equipment_utilization", "low", "threshold", "Low Equipment Utilization",
                   "Equipment utilization is below 60%",
                   {"operator": "<", "value": 60}),
            _alert("labor_cost_variance", "high", "trend", "Labor Cost Over Budget",
                   "Labor costs are trending above budget",
                   {"operator": ">", "value": 0}),
            _alert("project_margin", "medium", "trend", "Project Margin Trend Negative",
                   "Project margin has declined for 3 consecutive periods",
                   {"operator": "trend_down", "periods": 3}),
        ],
        "cadence": _cadence(
            "Daily Standup", "Weekly Operations Review", "Monthly Business Review"
        ),
    },
}

SERVICE_OPS = {
    "key": "service_ops",
    "name": "Service Ops OS",
    "description": (
        "Operating System template for service businesses with technician "
        "scheduling, customer satisfaction, and SLA tracking."
    ),
    "version": 1,
    "template_json": {
        "kpis": [
            _kpi("first_call_resolution", "First Call Resolution %",
                 "Percentage of service calls resolved on first visit",
                 "Resolved First Visit / Total Calls * 100"),
            _kpi("avg_response_time", "Average Response Time (hours)",
                 "Average time from request to technician arrival",
                 "AVG(arrival_time - request_time)"),
            _kpi("customer_satisfaction", "Customer Satisfaction Score",
                 "Average customer satisfaction rating (1-5 scale)",
                 "AVG(satisfaction_rating)"),
            _kpi("technician_utilization", "Technician Utilization %",
                 "Percentage of technician time spent on billable work",
                 "Billable Hours / Total Hours * 100"),
            _kpi("revenue_per_technician", "Revenue per Technician",
                 "Average monthly revenue generated per technician",
                 "Total Revenue / Number of Technicians"),
        ],
        "dashboards": _dashboards(
            ["first_call_resolution", "avg_response_time", "customer_satisfaction"],
            "first_call_resolution",
            "technician_utilization",
        ),
        "alerts": [
            _alert("first_call_resolution", "high", "threshold",
                   "First Call Resolution Below Target",
                   "First call resolution rate is below 70%",
                   {"operator": "<", "value": 70}),
            _alert("avg_response_time", "critical", "threshold", "Response Time Exceeds SLA",
                   "Average response time exceeds 4 hours",
                   {"operator": ">", "value": 4}),
            _alert("customer_satisfaction", "medium", "threshold",
                   "Customer Satisfaction Declining",
                   "Customer satisfaction score is below 4.0",
                   {"operator": "<", "value": 4.0}),
            _alert("technician_utilization", "low", "threshold", "Low Technician Utilization",
                   "Technician utilization is below 75%",
                   {"operator": "<", "value": 75}),
            _alert("revenue_per_technician", "medium", "trend",
                   "Revenue per Technician Declining",
                   "Revenue per technician has declined for 2 consecutive months",
                   {"operator": "trend_down", "periods": 2}),
            _alert("avg_response_time", "high", "trend", "Response Time Trending Up",
                   "Average response time has increased for 3 consecutive weeks",
                   {"operator": "trend_up", "periods": 3}),
        ],
        "cadence": _cadence(
            "Daily Operations Huddle", "Weekly Service Review", "Monthly Business Review"
        ),
    },
}

FINANCE_OPS = {
    "key": "finance_ops",
    "name": "Finance OS",
    "description": (
        "Operating System template for financial operations with cash flow, "
        "AR/AP, and profitability tracking."
    ),
    "version": 1,
    "template_json": {
        "kpis": [
            _kpi("cash_flow", "Monthly Cash Flow",
                 "Net cash flow for the current month",
                 "Cash Inflows - Cash Outflows"),
            _kpi("days_sales_outstanding", "Days Sales Outstanding (DSO)",
                 "Average number of days to collect receivables",
                 "(Accounts Receivable / Revenue) * Days in Period"),
            _kpi("gross_margin", "Gross Margin %",
                 "Gross profit margin percentage",
                 "(Revenue - COGS) / Revenue * 100"),
            _kpi("ebitda", "EBITDA",
                 "Earnings before interest, taxes, depreciation, and amortization",
                 "Revenue - Operating Expenses (excluding interest, taxes, D&A)"),
            _kpi("burn_rate", "Monthly Burn Rate",
                 "Monthly cash consumption rate",
                 "Monthly Operating Expenses"),
        ],
        "dashboards": _dashboards(
            ["cash_flow", "gross_margin", "ebitda"],
            "cash_flow",
            "days_sales_outstanding",
        ),
        "alerts": [
            _alert("cash_flow", "critical", "threshold", "Negative Cash Flow",
                   "Monthly cash flow is negative",
                   {"operator": "<", "value": 0}),
            _alert("days_sales_outstanding", "high", "threshold", "DSO Above Target",
                   "Days sales outstanding exceeds 45 days",
                   {"operator": ">", "value": 45}),
            _alert("gross_margin", "medium", "threshold", "Gross Margin Below Target",
                   "Gross margin is below 30%",
                   {"operator": "<", "value": 30}),
            _alert("ebitda", "high", "threshold", "Negative EBITDA",
                   "EBITDA is negative",
                   {"operator": "<", "value": 0}),
            _alert("burn_rate", "critical", "trend", "Burn Rate Increasing",
                   "Monthly burn rate has increased for 2 consecutive months",
                   {"operator": "trend_up", "periods": 2}),
            _alert("cash_flow", "high", "trend", "Cash Flow Trend Negative",
                   "Cash flow has declined for 3 consecutive months",
                   {"operator": "trend_down", "periods": 3}),
        ],
        "cadence": _cadence(
            "Daily Cash Review",
            "Weekly Finance Review",
            "Monthly Financial Review",
            include_alerts={"severity": ["critical"]},
            include_kpis=["cash_flow"],
        ),
    },
}

BUILTIN_TEMPLATES: list[dict] = [CONSTRUCTION_OPS, SERVICE_OPS, FINANCE_OPS]


def seed_builtin_templates(db: Session) -> dict[str, str]:
    """
    Upsert every built-in template by key.

    Returns {key: "created" | "updated" | "unchanged"}.
    """
    results: dict[str, str] = {}
    try:
        for definition in BUILTIN_TEMPLATES:
            existed = os_template_service.get_template(db, definition["key"]) is not None
            _, changed = os_template_service.upsert_template(db, **definition)
            if not changed:
                results[definition["key"]] = "unchanged"
            else:
                results[definition["key"]] = "updated" if existed else "created"
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Seeding built-in templates failed")
        raise Unexpected(str(exc)) from exc
    return results
