"""Observability endpoints exposing redemption counters."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from giftpoints_api.api.dependencies.security import require_internal_api_key
from giftpoints_api.observability.redemptions import get_redemption_store


router = APIRouter(
    prefix="/observability",
    tags=["Observability"],
    dependencies=[Depends(require_internal_api_key)],
)


@router.get("/redemptions", summary="Redemption observability snapshot")
async def get_redemption_snapshot() -> dict[str, object]:
    return get_redemption_store().snapshot().as_dict()


def _format_metric(
    name: str,
    description: str,
    samples: list[tuple[dict[str, str] | None, int | float]],
    metric_type: str = "counter",
) -> list[str]:
    lines = [f"# HELP {name} {description}", f"# TYPE {name} {metric_type}"]
    for labels, value in samples:
        label_fragment = ""
        if labels:
            formatted = ",".join(f'{key}="{val}"' for key, val in sorted(labels.items()))
            label_fragment = f"{{{formatted}}}"
        lines.append(f"{name}{label_fragment} {value}")
    return lines


@router.get(
    "/prometheus",
    summary="Prometheus-formatted redemption metrics",
    response_class=PlainTextResponse,
)
async def get_prometheus_metrics() -> PlainTextResponse:
    snapshot = get_redemption_store().snapshot()
    lines: list[str] = []

    lines.extend(
        _format_metric(
            "giftpoints_redemptions_total",
            "Committed single-gift redemptions",
            [(None, snapshot.redemptions.get("succeeded", 0))],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_redemption_units_total",
            "Gift units redeemed through single redemptions",
            [(None, snapshot.redemptions.get("units", 0))],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_points_spent_total",
            "Points spent across committed redemptions",
            [(None, snapshot.redemptions.get("points_spent", 0))],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_batch_redemptions_total",
            "Committed batch redemptions",
            [(None, snapshot.batches.get("succeeded", 0))],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_batch_items_max",
            "Largest committed batch size",
            [(None, snapshot.batches.get("max_items", 0))],
            metric_type="gauge",
        )
    )
    failures = [({"code": code}, count) for code, count in sorted(snapshot.failures.items())]
    lines.extend(
        _format_metric(
            "giftpoints_redemption_failures_total",
            "Rejected redemptions by failure code",
            failures or [(None, 0)],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_ledger_entries_total",
            "Committed ledger entries by direction",
            [
                ({"direction": "credit"}, snapshot.ledger.get("credits", 0)),
                ({"direction": "debit"}, snapshot.ledger.get("debits", 0)),
            ],
        )
    )
    lines.extend(
        _format_metric(
            "giftpoints_ratings_total",
            "Recorded gift ratings",
            [(None, snapshot.ratings.get("total", 0))],
        )
    )

    return PlainTextResponse("\n".join(lines) + "\n")
