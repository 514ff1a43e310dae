from __future__ import annotations

import pytest

from fixture_data import NPCS, SKILL_BUFFS, SKILL_EFFECTS, SKILLS
from loa_meter.domain import ReferenceData
from loa_meter.meter import EncounterParser
from loa_meter.models import Encounter
from loa_meter.notify import QueueEventSink


@pytest.fixture
def reference() -> ReferenceData:
    return ReferenceData.from_raw(
        npcs=NPCS,
        skills=SKILLS,
        skill_effects=SKILL_EFFECTS,
        skill_buffs=SKILL_BUFFS,
    )


@pytest.fixture
def replay_parser(reference: ReferenceData) -> EncounterParser:
    return EncounterParser(reference, collector=[])


@pytest.fixture
def live_sink() -> QueueEventSink:
    return QueueEventSink()


@pytest.fixture
def live_parser(reference: ReferenceData, live_sink: QueueEventSink) -> EncounterParser:
    return EncounterParser(reference, encounter=Encounter(), sink=live_sink, settle_seconds=0.0)
