import pandas as pd
import pytest

from hiring_pipeline.domains.hiring_managers.stages import StageMapping, StageMappingConfig
from hiring_pipeline.domains.hiring_managers.taxonomy import CanonicalStage

AS_OF = pd.Timestamp("2024-03-01")


def _req(req_id, hm="hm1", opened="2024-01-01", closed=None, status="Open", **extra):
    return {
        "req_id": req_id,
        "req_title": f"Role {req_id}",
        "function": "Engineering",
        "level": "L5",
        "status": status,
        "opened_at": opened,
        "closed_at": closed,
        "hiring_manager_id": hm,
        "recruiter_id": "rec1",
        **extra,
    }


def _candidate(candidate_id, req_id, stage, disposition="Active", **extra):
    return {
        "candidate_id": candidate_id,
        "req_id": req_id,
        "name": f"Candidate {candidate_id}",
        "current_stage": stage,
        "disposition": disposition,
        **extra,
    }


def _event(candidate_id, req_id, event_type, at, from_stage=None, to_stage=None, actor="hm1"):
    return {
        "candidate_id": candidate_id,
        "req_id": req_id,
        "event_type": event_type,
        "event_at": at,
        "from_stage": from_stage,
        "to_stage": to_stage,
        "actor_user_id": actor,
    }


@pytest.fixture
def make_req():
    return _req


@pytest.fixture
def make_candidate():
    return _candidate


@pytest.fixture
def make_event():
    return _event


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def stage_config():
    labels = [
        ("Applied", CanonicalStage.APPLIED),
        ("Recruiter Screen", CanonicalStage.SCREEN),
        ("HM Screen", CanonicalStage.HM_SCREEN),
        ("Onsite", CanonicalStage.ONSITE),
        ("Final Round", CanonicalStage.FINAL),
        ("Offer", CanonicalStage.OFFER),
        ("Hired", CanonicalStage.HIRED),
        ("Rejected", CanonicalStage.REJECTED),
        ("Withdrew", CanonicalStage.WITHDREW),
    ]
    return StageMappingConfig(
        mappings=tuple(StageMapping(label, stage) for label, stage in labels),
        is_complete=True,
    )


@pytest.fixture
def users():
    return [
        {"user_id": "hm1", "name": "Alice Chen", "role": "HiringManager", "team": "Platform",
         "manager_user_id": "vp1"},
        {"user_id": "hm2", "name": "Ben Ortiz", "role": "HiringManager", "team": "Data",
         "manager_user_id": None},
        {"user_id": "rec1", "name": "Rita Gomez", "role": "Recruiter", "team": "Talent",
         "manager_user_id": None},
        {"user_id": "vp1", "name": "Vera Park", "role": "Executive", "team": "Platform",
         "manager_user_id": None},
    ]


@pytest.fixture
def snapshot(users):
    """Two HMs, three reqs (one closed), six candidates.

    As of 2024-03-01:
    - R1 (hm1): C1 waiting 10 days in HM review, C2 interviewed 4 days ago with
      no feedback, C3 in offer for 2 days, C4 already hired.
    - R2 (hm1): closed.
    - R3 (hm2): C5 applied, C6 in final round for 6 days.
    """
    requisitions = [
        _req("R1", location_city="Austin"),
        _req("R2", opened="2023-10-01", closed="2024-01-15", status="Closed", level="L4"),
        _req("R3", hm="hm2", opened="2024-02-20", function="Data", level="L4", location_region="US-East"),
    ]
    candidates = [
        _candidate("C1", "R1", "HM Screen"),
        _candidate("C2", "R1", "Onsite"),
        _candidate("C3", "R1", "Offer"),
        _candidate("C4", "R1", "Hired", disposition="Hired"),
        _candidate("C5", "R3", "Applied"),
        _candidate("C6", "R3", "Final Round"),
    ]
    events = [
        _event("C1", "R1", "STAGE_CHANGE", "2024-02-20", "Applied", "HM Screen", actor="rec1"),
        _event("C2", "R1", "STAGE_CHANGE", "2024-02-10", "Applied", "HM Screen", actor="rec1"),
        _event("C2", "R1", "STAGE_CHANGE", "2024-02-14", "HM Screen", "Onsite"),
        _event("C2", "R1", "INTERVIEW_COMPLETED", "2024-02-26"),
        _event("C3", "R1", "INTERVIEW_COMPLETED", "2024-02-15"),
        _event("C3", "R1", "FEEDBACK_SUBMITTED", "2024-02-17"),
        _event("C3", "R1", "STAGE_CHANGE", "2024-02-27", "Final Round", "Offer"),
        _event("C6", "R3", "STAGE_CHANGE", "2024-02-24", "HM Screen", "Final Round", actor="hm2"),
    ]
    return {
        "requisitions": requisitions,
        "candidates": candidates,
        "events": events,
        "users": users,
    }
