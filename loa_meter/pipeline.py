from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from loa_meter.domain.reference_data import ReferenceData
from loa_meter.meter.encounter_parser import LIVE_SETTLE_SECONDS, EncounterParser
from loa_meter.meter.finalize import finalize_encounters
from loa_meter.models import Encounter
from loa_meter.notify import EventSink
from loa_meter.protocol.log_lines import LogParseError, tokenize_line

LOG_ENCODING = "utf-8"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncounterSnapshot:
    timestamp: int
    encounter: Encounter


def parse_log(lines: Iterable[str], reference: ReferenceData) -> list[Encounter]:
    encounters: list[Encounter] = []
    parser = EncounterParser(reference, collector=encounters)
    count = 0
    for line in lines:
        parser.parse_line(line)
        count += 1
    parser.flush()
    logger.debug("Parsed %d lines into %d encounters", count, len(encounters))
    return finalize_encounters(encounters)


def replay_encounters(path: str | Path, reference: ReferenceData) -> list[Encounter]:
    return parse_log(read_log_lines(path), reference)


def stream_encounter(
    lines: Iterable[str],
    parser: EncounterParser,
    *,
    snapshot_interval: float = 1.0,
) -> Iterator[EncounterSnapshot]:
    interval_ms = int(snapshot_interval * 1000)
    last_emit: int | None = None
    last_timestamp: int | None = None
    for line in lines:
        log_line = tokenize_line(line)
        if log_line is None:
            continue
        parser.handle(log_line)
        last_timestamp = log_line.timestamp
        if last_emit is None or interval_ms <= 0 or log_line.timestamp - last_emit >= interval_ms:
            yield EncounterSnapshot(timestamp=log_line.timestamp, encounter=parser.encounter)
            last_emit = log_line.timestamp
    if last_timestamp is not None and last_emit != last_timestamp:
        yield EncounterSnapshot(timestamp=last_timestamp, encounter=parser.encounter)


def live_encounter(
    path: str | Path,
    reference: ReferenceData,
    *,
    sink: EventSink | None = None,
    encounter: Encounter | None = None,
    from_start: bool = False,
    poll_interval: float = 0.25,
    settle_seconds: float = LIVE_SETTLE_SECONDS,
    snapshot_interval: float = 1.0,
) -> Iterator[EncounterSnapshot]:
    parser = EncounterParser(
        reference,
        encounter=encounter if encounter is not None else Encounter(),
        sink=sink,
        settle_seconds=settle_seconds,
    )
    return stream_encounter(
        follow_log_lines(path, poll_interval=poll_interval, from_start=from_start),
        parser,
        snapshot_interval=snapshot_interval,
    )


def read_log_lines(path: str | Path) -> list[str]:
    try:
        text = Path(path).read_text(encoding=LOG_ENCODING)
    except (OSError, UnicodeDecodeError) as exc:
        raise LogParseError(f"Failed to read log {path}: {exc}") from exc
    return text.splitlines()


def follow_log_lines(
    path: str | Path,
    *,
    poll_interval: float = 0.25,
    from_start: bool = False,
) -> Iterator[str]:
    with open(path, encoding=LOG_ENCODING, errors="replace", newline="") as handle:
        if not from_start:
            handle.seek(0, 2)
        pending = ""
        while True:
            chunk = handle.readline()
            if not chunk:
                time.sleep(poll_interval)
                continue
            pending += chunk
            if not pending.endswith("\n"):
                continue
            line, pending = pending.rstrip("\r\n"), ""
            yield line
