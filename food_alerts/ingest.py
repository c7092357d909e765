"""
Ingestion job: fetch feed pages, normalize each record, and upsert the raw
record plus one fact per hazard.

Every write is keyed by a deterministic id, so re-running over the same
pages updates rows in place instead of duplicating them.
"""

import time
from typing import Any, List, Optional, Tuple

from food_alerts import database
from food_alerts.config import PipelineConfig, load_config
from food_alerts.expander import build_envelope, expand_facts
from food_alerts.feed import FeedFetchError, iter_pages
from food_alerts.identity import derive_source_id
from food_alerts.mapping_cache import MappingCache
from food_alerts.models import IngestResult, MappingType
from food_alerts.normalizer import normalize_record
from util.logging_util import log_run_summary, setup_logger

logger = setup_logger(__name__)


def _track_unknown_values(unknowns: List[Tuple[MappingType, str, Optional[str]]], now: int):
    """Queue unmapped values for review. Failures here never fail the record."""
    for value_type, raw_value, suggestion in unknowns:
        try:
            database.track_unknown_value(value_type, raw_value, suggestion, now=now)
        except Exception as e:
            logger.warning(f"Could not track unknown {value_type.value} value {raw_value!r}: {e}")


def ingest_record(record: Any, mappings: Optional[MappingCache], link_base_url: str, now: int) -> int:
    """Normalize and store one record. Returns the number of facts written.

    Unmapped values are only queued once the record itself is stored.
    """
    if not isinstance(record, dict):
        raise ValueError(f"Expected a JSON object, got {type(record).__name__}")

    unknowns: List[Tuple[MappingType, str, Optional[str]]] = []

    def observe(value_type: MappingType, raw_value: str, suggestion: Optional[str]):
        unknowns.append((value_type, raw_value, suggestion))

    envelope = build_envelope(record, now)
    alert = normalize_record(record, mappings, observe, link_base_url)
    facts = expand_facts(envelope, alert)

    database.upsert_raw_record(envelope)
    written = database.upsert_facts(facts, now)

    _track_unknown_values(unknowns, now)
    return written


def run_ingestion(config: Optional[PipelineConfig] = None,
                  mapping_cache: Optional[MappingCache] = None,
                  now: Optional[int] = None) -> IngestResult:
    """Run one ingestion pass over at most `config.page_limit` feed pages.

    A failing record is logged and skipped. A failing page fetch stops the
    run; everything stored before it stays stored.
    """
    config = config or load_config()
    now = now if now is not None else int(time.time())

    if mapping_cache is None:
        mapping_cache = MappingCache(database.load_mappings)
    mapping_cache.refresh_if_stale(now)

    result = IngestResult()

    logger.info(f"Starting ingestion from {config.feed_url} (page limit {config.page_limit})")
    try:
        for page in iter_pages(config.feed_url, config.page_limit, config.request_timeout):
            result.pages_processed += 1
            for record in page.records:
                result.records_seen += 1
                try:
                    result.facts_upserted += ingest_record(
                        record, mapping_cache, config.link_base_url, now
                    )
                except Exception as e:
                    result.records_failed += 1
                    logger.error(f"Failed to ingest record {derive_source_id(record)}: {e}")
    except FeedFetchError as e:
        logger.error(f"Stopping ingestion: {e}")
        result.aborted = True
        result.error = str(e)

    log_run_summary(
        logger,
        "ingest",
        {
            "pages": result.pages_processed,
            "records": result.records_seen,
            "failed": result.records_failed,
            "facts": result.facts_upserted,
        },
        error=result.error,
    )
    return result
