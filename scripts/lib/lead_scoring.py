"""
Brokerage Hub — Lead Scorer
==============================

BANT lead qualification for the demo lead book:
  BANT Score (0-100):  budget + authority + need + timeline, each 0-25
  Bonus Score:         propertyFit + sourceQuality + companyProfile (informational)

Grade comes from the BANT score alone, first threshold met wins:
  A >= 85, B >= 70, C >= 50, D >= 25, else U.
Any BANT sub-score of exactly 0 means missing data and forces U.

Functions:
  determine_grade()       - Grade info for a BANT score
  compute_lead_scores()   - Scored copy of one lead
  load_demo_leads()       - Scored leads from data/leads_seed.json
  hot_lead_count()        - Number of A-grade leads
  conversion_rate()       - Share of A+B leads, rounded percent
"""
from __future__ import annotations

import copy
import json
from functools import lru_cache
from typing import Dict, List

from scripts.lib.config import PROJECT_ROOT
from scripts.lib.logger import setup_logger

logger = setup_logger("lead_scoring")

SEED_FILE = PROJECT_ROOT / "data" / "leads_seed.json"

BANT_KEYS = ("budget", "authority", "need", "timeline")
BONUS_KEYS = ("propertyFit", "sourceQuality", "companyProfile")

GRADE_SCALE = [
    {
        "grade": "A",
        "min": 85,
        "description": "Hot Lead — high budget, decision maker, urgent requirement.",
        "priority": "Immediate contact within 1 hour.",
    },
    {
        "grade": "B",
        "min": 70,
        "description": "Warm Lead — good budget, strong influence, near-term move.",
        "priority": "Follow-up within 24 hours.",
    },
    {
        "grade": "C",
        "min": 50,
        "description": "Cool Lead — moderate budget, limited authority, exploring.",
        "priority": "Schedule touchpoint within 3 days.",
    },
    {
        "grade": "D",
        "min": 25,
        "description": "Cold Lead — low budget or distant timeline.",
        "priority": "Add to nurture campaign.",
    },
    {
        "grade": "U",
        "min": 0,
        "description": "Unqualified — insufficient information.",
        "priority": "Request missing data or disqualify.",
    },
]

_UNQUALIFIED = GRADE_SCALE[-1]


def determine_grade(bant_score: float, has_unknown: bool = False) -> Dict:
    """Grade info for a BANT score. `has_unknown` overrides the thresholds."""
    if has_unknown:
        return dict(_UNQUALIFIED)
    for tier in GRADE_SCALE:
        if bant_score >= tier["min"]:
            return dict(tier)
    return dict(_UNQUALIFIED)


def _build_properties(refs: List[Dict], library: Dict[str, Dict]) -> List[Dict]:
    """Resolve property refs against the library; unknown ids are skipped."""
    resolved = []
    for ref in refs or []:
        prop = library.get(ref.get("id"))
        if prop:
            resolved.append({**prop, "fit": ref.get("fit")})
    return resolved


def compute_lead_scores(lead: Dict, library: Dict[str, Dict] = None) -> Dict:
    """
    Return a scored copy of a lead.

    Adds bantScore, bonusScore, totalScore, grade, gradeInfo, priority and
    hasUnknown. Missing sub-scores count as 0 (and therefore as unknown).
    """
    scored = copy.deepcopy(lead)
    bant = scored.get("bant") or {}
    bonus = scored.get("bonus") or {}

    bant_values = [bant.get(key, 0) or 0 for key in BANT_KEYS]
    bant_score = sum(bant_values)
    bonus_score = sum(bonus.get(key, 0) or 0 for key in BONUS_KEYS)
    has_unknown = any(value == 0 for value in bant_values)
    grade_info = determine_grade(bant_score, has_unknown)

    if library is not None:
        scored["propertyMatches"] = _build_properties(scored.get("propertyMatches"), library)
        scored["alternativeProperties"] = _build_properties(scored.pop("alternatives", []), library)

    scored.update({
        "bantScore": bant_score,
        "bonusScore": bonus_score,
        "totalScore": bant_score + bonus_score,
        "grade": grade_info["grade"],
        "gradeInfo": grade_info,
        "priority": grade_info["priority"],
        "hasUnknown": has_unknown,
    })
    return scored


@lru_cache(maxsize=1)
def _load_seed() -> Dict:
    with open(SEED_FILE, "r", encoding="utf-8") as f:
        return json.load(f)


def load_demo_leads() -> List[Dict]:
    """Scored demo leads, in seed order."""
    seed = _load_seed()
    library = seed.get("properties", {})
    leads = [compute_lead_scores(lead, library) for lead in seed.get("leads", [])]
    logger.debug("Scored %d demo leads", len(leads))
    return leads


def hot_lead_count(leads: List[Dict]) -> int:
    return sum(1 for lead in leads if lead.get("grade") == "A")


def conversion_rate(leads: List[Dict]) -> int:
    """Percentage of leads graded A or B, rounded half up."""
    if not leads:
        return 0
    converted = sum(1 for lead in leads if lead.get("grade") in ("A", "B"))
    return int(converted * 100 / len(leads) + 0.5)


def lead_stats(leads: List[Dict]) -> Dict:
    by_grade = {tier["grade"]: 0 for tier in GRADE_SCALE}
    for lead in leads:
        by_grade[lead["grade"]] = by_grade.get(lead["grade"], 0) + 1
    return {
        "total": len(leads),
        "hotLeads": hot_lead_count(leads),
        "conversionRate": conversion_rate(leads),
        "byGrade": by_grade,
    }
