"""Tests for campaign and analytics record schemas."""

import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from redirector.infrastructure.schemas import (
    AnalyticParam,
    AnalyticsEvent,
    Campaign,
    EventType,
    Page,
)


class TestCampaignRecord:
    def test_parse_stored_record(self, sample_record):
        campaign = Campaign.from_record(sample_record)

        assert campaign.id == 7
        assert campaign.key == "landing"
        assert campaign.params == "source=newsletter"
        assert campaign.cycles_done == 3
        assert [p.id for p in campaign.pages] == [11, 12]
        assert campaign.pages[1].url == "https://b.test/?ref=x"
        assert campaign.pages[0].cycle_hits_todo == 60

    def test_record_uses_stored_field_names(self, sample_record):
        data = json.loads(Campaign.from_record(sample_record).to_record())

        assert set(data) == {"ID", "Name", "Key", "Params", "CyclesDone", "Pages"}
        assert set(data["Pages"][0]) == {"ID", "Name", "URL", "CycleHitsDone", "CycleHitsTodo"}
        assert data == json.loads(sample_record)

    def test_null_pages(self):
        campaign = Campaign.from_record('{"Key": "empty", "Pages": null}')
        assert campaign.pages == ()

    def test_missing_key_rejected(self):
        with pytest.raises(ValidationError):
            Campaign.from_record('{"ID": 1, "Pages": []}')

    def test_negative_hits_rejected(self):
        with pytest.raises(ValidationError):
            Page(id=1, url="https://a.test", cycle_hits_done=-1)

    def test_duplicate_page_ids_rejected(self):
        record = json.dumps({
            "Key": "dup",
            "Pages": [
                {"ID": 1, "URL": "https://a.test", "CycleHitsDone": 5, "CycleHitsTodo": 5},
                {"ID": 1, "URL": "https://b.test", "CycleHitsDone": 0, "CycleHitsTodo": 5},
            ],
        })
        with pytest.raises(ValidationError, match="duplicate page ID 1"):
            Campaign.from_record(record)

    def test_frozen(self, sample_campaign):
        with pytest.raises(ValidationError):
            sample_campaign.cycles_done = 5

    def test_total_cycle_hits(self, sample_campaign):
        assert sample_campaign.total_cycle_hits == 40


class TestAnalyticsEvent:
    def test_queue_payload_layout(self):
        event = AnalyticsEvent(
            page_id=12,
            timestamp=datetime(2024, 3, 1, 9, 5, 7),
            type=EventType.HIT,
            params=(AnalyticParam(name="utm", value="mail"),),
        )

        data = json.loads(event.to_queue_data())

        assert data == {
            "CampaignPageID": 12,
            "Date": "2024-03-01 09:05:07",
            "Type": "hit",
            "Params": [{"Name": "utm", "Value": "mail"}],
        }

    def test_create_uses_timezone(self):
        event = AnalyticsEvent.create(3, EventType.VIEW, timezone="Europe/Paris")

        expected_offset = datetime.now(ZoneInfo("Europe/Paris")).utcoffset()
        assert event.timestamp.utcoffset() == expected_offset
        assert event.type is EventType.VIEW
        assert event.params == ()

    def test_create_keeps_param_order(self):
        event = AnalyticsEvent.create(3, EventType.HIT, [("b", "2"), ("a", "1")])
        assert [(p.name, p.value) for p in event.params] == [("b", "2"), ("a", "1")]

    def test_empty_params_serialized_as_list(self):
        event = AnalyticsEvent.create(3, EventType.HIT)
        assert json.loads(event.to_queue_data())["Params"] == []
