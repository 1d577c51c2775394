import datetime

import pytest

from dealership_reports.features.reports.metrics import (
    HealthCheck, PointsRule, ThresholdLadder, bottom_n, days_between, extract_response_times, health_score,
    js_round, parse_timestamp, percentage, rate, ratio, safe_average, safe_max, safe_min, score_rules, share_table,
    top_n,
)
from dealership_reports.features.reports.dropdowns.service import DROPDOWN_HEALTH, SYSTEM_HEALTH, USAGE_HEALTH
from dealership_reports.features.reports.notifications.service import QUALITY_STATUS
from dealership_reports.features.reports.tradeins.service import CONFIG_HEALTH, EFFECTIVENESS_LEVEL


def test_js_round_rounds_half_up():
    assert js_round(2.5) == 3
    assert js_round(62.5) == 63
    assert js_round(2.4) == 2
    assert js_round(1.25, 1) == 1.3
    assert js_round(None) == 0


def test_rate_is_whole_percentage_and_zero_safe():
    assert rate(1, 3) == 33
    assert rate(2, 3) == 67
    assert rate(5, 0) == 0
    assert rate(0, 10) == 0


def test_percentage_and_ratio_keep_decimals():
    assert percentage(1, 3) == 33.3
    assert percentage(1, 8, 2) == 12.5
    assert percentage(1, 0) == 0
    assert ratio(7, 2) == 3.5
    assert ratio(10, 3) == 3.3
    assert ratio(1, 0) == 0


def test_safe_aggregates_ignore_missing_values():
    assert safe_average([]) == 0
    assert safe_average([None, 2, 4]) == 3
    assert safe_min([None, 5, 3]) == 3
    assert safe_max([]) == 0
    assert safe_max([None], default=None) is None


def test_threshold_ladder_gte():
    ladder = ThresholdLadder([(70, "High"), (40, "Medium")], "Low")
    assert ladder(70) == "High"
    assert ladder(69.9) == "Medium"
    assert ladder(40) == "Medium"
    assert ladder(0) == "Low"
    assert ladder(None) == "Low"


def test_threshold_ladder_lte():
    ladder = ThresholdLadder([(15, "Immediate"), (60, "Fast")], "Slow", comparison="lte")
    assert ladder(15) == "Immediate"
    assert ladder(16) == "Fast"
    assert ladder(61) == "Slow"


def test_threshold_ladder_rejects_unordered_rungs():
    with pytest.raises(ValueError):
        ThresholdLadder([(40, "Medium"), (70, "High")], "Low")
    with pytest.raises(ValueError):
        ThresholdLadder([(70, "High")], "Low", comparison="between")


@pytest.mark.parametrize("ladder", [
    DROPDOWN_HEALTH, SYSTEM_HEALTH, USAGE_HEALTH, QUALITY_STATUS, CONFIG_HEALTH, EFFECTIVENESS_LEVEL,
])
def test_report_ladders_band_every_score_in_order(ladder):
    positions = [ladder.labels.index(ladder(score)) for score in range(0, 101)]
    assert positions == sorted(positions, reverse=ladder.comparison == "gte")
    assert len(set(positions)) == len(ladder.labels)


def test_points_rules_score_first_matching_rung():
    rules = (
        PointsRule("delivery_rate", ((95, 30), (85, 20))),
        PointsRule("failure_rate", ((0, 20), (5, 10)), comparison="lte"),
        PointsRule("has_values", ((1, 15),)),
    )
    assert score_rules(rules, {"delivery_rate": 96, "failure_rate": 0, "has_values": 1}) == 65
    assert score_rules(rules, {"delivery_rate": 90, "failure_rate": 3, "has_values": 0}) == 30
    assert score_rules(rules, {"delivery_rate": None}) == 0


def test_health_score_collects_messages_and_floors_at_zero():
    checks = (
        HealthCheck(lambda s: s["empty"], "No values configured", 40),
        HealthCheck(lambda s: s["empty"], "All values are inactive", 30),
        HealthCheck(lambda s: s["empty"], "Required dropdown has no default value", 20),
        HealthCheck(lambda s: True, "Missing description", 15, "warning"),
    )
    result = health_score({"empty": True}, checks)
    assert result.score == 0
    assert result.issues == [
        "No values configured", "All values are inactive", "Required dropdown has no default value",
    ]
    assert result.warnings == ["Missing description"]

    healthy = health_score({"empty": False}, checks)
    assert healthy.score == 85
    assert healthy.issues == []


def test_top_and_bottom_n_are_stable():
    rows = [{"name": "a", "score": 5}, {"name": "b", "score": 9}, {"name": "c", "score": 5}, {"name": "d"}]
    assert [r["name"] for r in top_n(rows, "score")] == ["b", "a", "c", "d"]
    assert [r["name"] for r in bottom_n(rows, "score", 2)] == ["d", "a"]


def test_share_table_orders_largest_first():
    table = share_table({"text": 1, "image": 3})
    assert table == [
        {"label": "image", "count": 3, "percentage": 75},
        {"label": "text", "count": 1, "percentage": 25},
    ]


def test_parse_timestamp_accepts_z_suffix_and_naive_values():
    parsed = parse_timestamp("2024-03-01T10:00:00Z")
    assert parsed == datetime.datetime(2024, 3, 1, 10, tzinfo=datetime.timezone.utc)
    assert parse_timestamp(datetime.datetime(2024, 3, 1, 10)).tzinfo is not None
    assert parse_timestamp("not a date") is None
    assert days_between(parsed + datetime.timedelta(days=2), parsed) == 2


def test_extract_response_times_counts_sender_changes_only():
    messages = [
        {"sender_type": "company", "created_at": "2024-03-01T10:00:00Z"},
        {"sender_type": "company", "created_at": "2024-03-01T10:05:00Z"},
        {"sender_type": "supplier", "created_at": "2024-03-01T10:35:00Z"},
        {"sender_type": "supplier", "created_at": "2024-03-01T10:40:00Z"},
        {"sender_type": "company", "created_at": "2024-03-01T11:40:00Z"},
    ]
    responses = extract_response_times(messages)
    assert [(r.from_sender, r.to_sender) for r in responses] == [("company", "supplier"), ("supplier", "company")]
    assert [r.minutes for r in responses] == [30, 60]


def test_extract_response_times_without_sender_change():
    assert extract_response_times([]) is None
    assert extract_response_times([{"sender_type": "company", "created_at": "2024-03-01T10:00:00Z"}]) is None
    assert extract_response_times([
        {"sender_type": "company", "created_at": "2024-03-01T10:00:00Z"},
        {"sender_type": "company", "created_at": "2024-03-01T10:05:00Z"},
    ]) is None
