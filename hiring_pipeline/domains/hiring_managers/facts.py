"""HM fact tables: enriched requisition, candidate and event frames.

Every downstream metric (rollups, stall reasons, pending actions, latency
benchmarks) reads from these three frames, so they are rebuilt wholesale on
each run from the raw snapshot and never mutated afterwards.
"""

import logging
from dataclasses import dataclass

import pandas as pd

from hiring_pipeline.domains.hiring_managers.models import (
    INACTIVE_DISPOSITIONS,
    MOVEMENT_EVENT_TYPES,
    UNKNOWN,
    EventType,
)
from hiring_pipeline.domains.hiring_managers.stages import (
    StageLookup,
    StageMappingConfig,
    build_stage_lookup,
    normalize_stage_series,
)
from hiring_pipeline.domains.hiring_managers.taxonomy import (
    PIPELINE_SEQUENCE,
    DecisionBucket,
    get_bucket_for_stage,
    is_terminal_stage,
)
from hiring_pipeline.domains.hiring_managers.transform import (
    Records,
    RecruitingSnapshot,
    as_timestamp,
    prepare_inputs,
)
from hiring_pipeline.utils.transforms import days_since, elapsed_days

logger = logging.getLogger(__name__)

UNKNOWN_REQ = "Unknown Req"

type BucketGroups = dict[DecisionBucket, pd.DataFrame]

_REQ_ENRICHMENT = {
    "req_title": UNKNOWN_REQ,
    "hm_user_id": "",
    "hm_name": UNKNOWN,
    "recruiter_id": "",
    "recruiter_name": UNKNOWN,
}


@dataclass(frozen=True)
class FactTables:
    req_facts: pd.DataFrame
    candidate_facts: pd.DataFrame
    event_facts: pd.DataFrame
    as_of: pd.Timestamp


def build_fact_tables(
    requisitions: Records,
    candidates: Records,
    events: Records,
    users: Records,
    stage_config: StageMappingConfig,
    as_of,
) -> FactTables:
    """Build all HM fact tables from the raw record streams.

    Pure function of its inputs: lookups are built fresh on every call and the
    input frames are never modified.
    """
    snapshot = prepare_inputs(requisitions, candidates, events, users)
    return facts_from_snapshot(snapshot, stage_config, as_of)


def facts_from_snapshot(snapshot: RecruitingSnapshot, stage_config: StageMappingConfig, as_of) -> FactTables:
    as_of = as_timestamp(as_of)
    user_names = user_name_lookup(snapshot.users)
    stage_lookup = build_stage_lookup(stage_config)
    events = events_as_of(snapshot.events, as_of)

    req_facts = build_req_facts(snapshot.requisitions, user_names, as_of)
    candidate_facts = build_candidate_facts(
        snapshot.candidates, events, req_facts, stage_lookup, as_of,
    )
    event_facts = build_event_facts(
        events, snapshot.candidates, req_facts, user_names, stage_lookup,
    )

    logger.info(
        "Built HM fact tables as of %s: %d reqs (%d open), %d candidates (%d active), %d events",
        as_of.date(),
        len(req_facts),
        int(req_facts["is_open"].sum()),
        len(candidate_facts),
        int(candidate_facts["is_active"].sum()),
        len(event_facts),
    )
    return FactTables(
        req_facts=req_facts,
        candidate_facts=candidate_facts,
        event_facts=event_facts,
        as_of=as_of,
    )


def events_as_of(events: pd.DataFrame, as_of: pd.Timestamp) -> pd.DataFrame:
    """Drop events dated after ``as_of``; undated events are kept."""
    seen = events["event_at"].isna() | (events["event_at"] <= as_of)
    if not seen.all():
        logger.info("Ignoring %d event(s) dated after %s", int((~seen).sum()), as_of.date())
    return events[seen]


def user_name_lookup(users: pd.DataFrame) -> dict[str, str]:
    """First non-null display name per user id."""
    named = users.dropna(subset=["name"]).drop_duplicates(subset=["user_id"], keep="first")
    return dict(zip(named["user_id"], named["name"]))


def _names_for(ids: pd.Series, user_names: dict[str, str]) -> pd.Series:
    return pd.Series(
        [user_names.get(uid, UNKNOWN) if uid else UNKNOWN for uid in ids],
        index=ids.index,
        dtype=object,
    )


def build_req_facts(
    requisitions: pd.DataFrame,
    user_names: dict[str, str],
    as_of: pd.Timestamp,
) -> pd.DataFrame:
    """Derive open status, age and display names for each requisition.

    Closed reqs get an age frozen at ``closed_at``. A req without ``opened_at``
    keeps age 0 and is never treated as open.
    """
    df = requisitions.copy()
    has_closed = df["closed_at"].notna()

    df["is_open"] = (~has_closed & (df["status"] == "Open") & df["opened_at"].notna()).astype(bool)
    age_end = df["closed_at"].where(has_closed, as_of)
    df["req_age_days"] = elapsed_days(df["opened_at"], age_end)
    df["hm_name"] = _names_for(df["hiring_manager_id"], user_names)
    df["recruiter_name"] = _names_for(df["recruiter_id"], user_names)

    logger.info("Built %d req facts", len(df))
    return df


def build_stage_entry_map(events: pd.DataFrame) -> pd.DataFrame:
    """Most recent time each candidate entered each raw stage label.

    Stage changes are replayed in ascending ``event_at`` order and the last
    write per (candidate, label) wins.
    """
    stage_changes = events[
        (events["event_type"] == EventType.STAGE_CHANGE)
        & events["to_stage"].notna()
        & events["candidate_id"].notna()
    ]
    latest = (
        stage_changes
        .sort_values("event_at", kind="stable")
        .drop_duplicates(subset=["candidate_id", "to_stage"], keep="last")
    )
    return latest[["candidate_id", "to_stage", "event_at"]].rename(
        columns={"to_stage": "current_stage", "event_at": "stage_entered_at"},
    )


def _is_active(dispositions: pd.Series, canonical: pd.Series) -> pd.Series:
    active = []
    for disposition, stage in zip(dispositions, canonical):
        if isinstance(disposition, str) and disposition.strip().lower() in INACTIVE_DISPOSITIONS:
            active.append(False)
        elif is_terminal_stage(stage):
            active.append(False)
        else:
            active.append(True)
    return pd.Series(active, index=dispositions.index, dtype=bool)


def _join_req_details(df: pd.DataFrame, req_facts: pd.DataFrame) -> pd.DataFrame:
    details = req_facts[
        ["req_id", "req_title", "hiring_manager_id", "hm_name", "recruiter_id", "recruiter_name"]
    ].rename(columns={"hiring_manager_id": "hm_user_id"})
    base = df.drop(columns=[c for c in _REQ_ENRICHMENT if c in df.columns])
    joined = base.merge(details, on="req_id", how="left")
    return joined.assign(**{
        col: [v if isinstance(v, str) and v else default for v in joined[col]]
        for col, default in _REQ_ENRICHMENT.items()
    })


def build_candidate_facts(
    candidates: pd.DataFrame,
    events: pd.DataFrame,
    req_facts: pd.DataFrame,
    stage_lookup: StageLookup,
    as_of: pd.Timestamp,
) -> pd.DataFrame:
    """Attach canonical stage, bucket, activity and stage age to each candidate."""
    entry_map = build_stage_entry_map(events)
    df = candidates.drop(columns=["stage_entered_at"], errors="ignore").merge(
        entry_map, on=["candidate_id", "current_stage"], how="left",
    )
    df["stage_entered_at"] = pd.to_datetime(df["stage_entered_at"]).astype("datetime64[ns]")

    canonical = normalize_stage_series(df["current_stage"], stage_lookup)
    df["canonical_stage"] = canonical
    df["decision_bucket"] = pd.Series(
        [get_bucket_for_stage(stage) for stage in canonical], index=df.index, dtype=object,
    )
    df["is_active"] = _is_active(df["disposition"], canonical)
    df["stage_age_days"] = days_since(df["stage_entered_at"], as_of)
    df["candidate_name"] = [
        name if isinstance(name, str) and name else cid
        for name, cid in zip(df["name"], df["candidate_id"])
    ]

    stale = df[~df["is_active"] & ~pd.Series([is_terminal_stage(s) for s in canonical], index=df.index, dtype=bool)]
    if not stale.empty:
        logger.debug("%d candidate(s) are closed out by disposition while sitting in a non-terminal stage",
                     len(stale))
    unmapped = df["current_stage"].notna() & df["canonical_stage"].isna()
    if unmapped.any():
        logger.warning("%d candidate(s) have unmapped stage labels, bucketed as OTHER", int(unmapped.sum()))

    df = _join_req_details(df, req_facts)
    logger.info("Built %d candidate facts (%d active)", len(df), int(df["is_active"].sum()))
    return df


def _bucket_or_none(stages: pd.Series) -> pd.Series:
    return pd.Series(
        [get_bucket_for_stage(stage) if stage is not None else None for stage in stages],
        index=stages.index,
        dtype=object,
    )


def build_event_facts(
    events: pd.DataFrame,
    candidates: pd.DataFrame,
    req_facts: pd.DataFrame,
    user_names: dict[str, str],
    stage_lookup: StageLookup,
) -> pd.DataFrame:
    """Attach req, actor and before/after bucket to each event."""
    df = events.copy()
    df["actor_name"] = _names_for(df["actor_user_id"], user_names)
    df["from_bucket"] = _bucket_or_none(normalize_stage_series(df["from_stage"], stage_lookup))
    df["to_bucket"] = _bucket_or_none(normalize_stage_series(df["to_stage"], stage_lookup))

    known = candidates.drop_duplicates(subset=["candidate_id"], keep="first")
    names = dict(zip(
        known["candidate_id"],
        [n if isinstance(n, str) and n else cid for n, cid in zip(known["name"], known["candidate_id"])],
    ))
    df["candidate_name"] = [names.get(cid, "Unknown Candidate") for cid in df["candidate_id"]]

    details = req_facts[["req_id", "req_title", "hiring_manager_id"]].rename(
        columns={"hiring_manager_id": "hm_user_id"},
    )
    df = df.drop(columns=[c for c in ("req_title", "hm_user_id") if c in df.columns])
    df = df.merge(details, on="req_id", how="left")
    df["req_title"] = [t if isinstance(t, str) and t else UNKNOWN_REQ for t in df["req_title"]]
    df["hm_user_id"] = [h if isinstance(h, str) and h else "" for h in df["hm_user_id"]]

    logger.info("Built %d event facts", len(df))
    return df


def movement_events(event_facts: pd.DataFrame) -> pd.DataFrame:
    return event_facts[event_facts["event_type"].isin(sorted(MOVEMENT_EVENT_TYPES))]


def last_movement_dates(event_facts: pd.DataFrame) -> dict[str, pd.Timestamp]:
    """Most recent movement event per req id."""
    moves = movement_events(event_facts).dropna(subset=["req_id"])
    if moves.empty:
        return {}
    latest = moves.groupby("req_id", sort=False)["event_at"].max()
    return {req_id: ts for req_id, ts in latest.items()}


def get_last_movement_date(req_id: str, event_facts: pd.DataFrame) -> pd.Timestamp | None:
    """Movement = stage change, interview completed, offer extended or accepted."""
    return last_movement_dates(event_facts[event_facts["req_id"] == req_id]).get(req_id)


def split_by_bucket(candidate_facts: pd.DataFrame) -> BucketGroups:
    """Active candidates grouped by decision bucket; every bucket is present."""
    active = candidate_facts[candidate_facts["is_active"]]
    return {bucket: active[active["decision_bucket"] == bucket] for bucket in DecisionBucket}


def get_candidates_by_bucket(req_id: str, candidate_facts: pd.DataFrame) -> BucketGroups:
    return split_by_bucket(candidate_facts[candidate_facts["req_id"] == req_id])


def furthest_bucket(by_bucket: BucketGroups) -> DecisionBucket:
    """Most advanced non-DONE bucket holding an active candidate, else OTHER."""
    for bucket in reversed(PIPELINE_SEQUENCE):
        if not by_bucket[bucket].empty:
            return bucket
    return DecisionBucket.OTHER


def get_furthest_progressed_bucket(req_id: str, candidate_facts: pd.DataFrame) -> DecisionBucket:
    return furthest_bucket(get_candidates_by_bucket(req_id, candidate_facts))


def get_unique_hms(req_facts: pd.DataFrame) -> list[str]:
    """HM ids referenced by any req, open or closed, in first-seen order."""
    return list(dict.fromkeys(h for h in req_facts["hiring_manager_id"] if isinstance(h, str) and h))


def rows_by_req(frame: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """Split a fact frame into per-req slices in one pass."""
    keyed = frame.dropna(subset=["req_id"])
    return {req_id: group for req_id, group in keyed.groupby("req_id", sort=False)}
