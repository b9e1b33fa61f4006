"""
GovDash — Compliance Evaluation Engine

Scores a project against one standard from the evidence records it has
submitted for the standard's criteria.

Evidence validity by criterion evidence_type:
    document / file : evidence_url present
    link            : evidence_url starting with "http"
    text            : evidence longer than 10 characters

Criterion score by record status:
    approved              → max_score (always valid)
    submitted + valid     → binary 0 · partial 0.5 × max · scale 0.7 × max
    anything else         → 0

Criterion status by scoring_method:
    binary  : met if score ≥ max
    partial : met if score ≥ 0.8 × max, partial if score > 0
    scale   : met if score ≥ 0.9 × max, partial if score ≥ 0.5 × max
    no record → not_met, evidence missing

Overall:
    overall_score = round2(achieved / possible × 100 × standard.weight)
    status = failed   if a mandatory criterion is not_met
             partial  if any criterion is partial
             complete otherwise

Persistence of the resulting ComplianceEvaluation is done by crud.py.
"""

from typing import Optional

from .common import field, round_half_up

SUBMITTED_SCORE_FACTORS = {"binary": 0.0, "partial": 0.5, "scale": 0.7}


def _evidence_present(record, evidence_type: str) -> tuple[bool, str]:
    evidence_url = field(record, "evidence_url") or ""
    evidence = field(record, "evidence") or ""
    if evidence_type in ("document", "file"):
        valid = len(evidence_url) > 0
        return valid, "File URL provided" if valid else "File URL missing"
    if evidence_type == "link":
        valid = evidence_url.startswith("http")
        return valid, "Valid URL provided" if valid else "Invalid or missing URL"
    if evidence_type == "text":
        valid = len(evidence) > 10
        return valid, "Text evidence provided" if valid else "Insufficient text evidence"
    raise ValueError(f"Unknown evidence_type: {evidence_type}")


def validate_evidence(record, criterion) -> dict:
    """Check one evidence record against its criterion and score it."""
    max_score = field(criterion, "max_score")
    is_valid, notes = _evidence_present(record, field(criterion, "evidence_type"))

    score = 0.0
    status = field(record, "status")
    if status == "approved":
        is_valid = True
        score = max_score
    elif status == "submitted" and is_valid:
        score = max_score * SUBMITTED_SCORE_FACTORS[field(criterion, "scoring_method")]

    return {
        "is_valid": is_valid,
        "score": score,
        "max_score": max_score,
        "validation_notes": notes,
    }


def criterion_status(scoring_method: str, score: float, max_score: float) -> str:
    if scoring_method == "binary":
        return "met" if score >= max_score else "not_met"
    if scoring_method == "partial":
        if score >= max_score * 0.8:
            return "met"
        return "partial" if score > 0 else "not_met"
    if scoring_method == "scale":
        if score >= max_score * 0.9:
            return "met"
        return "partial" if score >= max_score * 0.5 else "not_met"
    raise ValueError(f"Unknown scoring_method: {scoring_method}")


def evaluate_criterion(criterion, record: Optional[object]) -> dict:
    result = {
        "criterion_id": field(criterion, "id"),
        "criterion_name": field(criterion, "name"),
        "score": 0.0,
        "max_score": field(criterion, "max_score"),
        "status": "not_met",
        "evidence_status": "missing",
        "validation_notes": None,
    }
    if record is None:
        return result

    validation = validate_evidence(record, criterion)
    result["score"] = validation["score"]
    result["evidence_status"] = "provided" if validation["is_valid"] else "invalid"
    result["validation_notes"] = validation["validation_notes"]
    result["status"] = criterion_status(
        field(criterion, "scoring_method"), validation["score"], result["max_score"]
    )
    return result


def evaluate_project(project, standard, criteria, records) -> dict:
    """
    Evaluate a project against a standard.

    Args:
        project: the project being evaluated
        standard: the standard (its weight scales the score)
        criteria: the standard's criteria
        records: the project's evidence records for this standard

    Raises:
        ValueError: if the standard has no criteria
    """
    criteria = list(criteria)
    if not criteria:
        raise ValueError("No criteria found for this standard")

    by_criterion = {field(r, "criterion_id"): r for r in records}
    results = []
    possible = achieved = 0.0
    for criterion in criteria:
        result = evaluate_criterion(criterion, by_criterion.get(field(criterion, "id")))
        results.append(result)
        possible += field(criterion, "max_score")
        achieved += result["score"]

    raw = achieved / possible * 100 if possible > 0 else 0.0
    overall = round_half_up(raw * field(standard, "weight"), 2)

    mandatory_ids = {field(c, "id") for c in criteria if field(c, "is_mandatory")}
    if any(r["criterion_id"] in mandatory_ids and r["status"] == "not_met" for r in results):
        status = "failed"
    elif any(r["status"] == "partial" for r in results):
        status = "partial"
    else:
        status = "complete"

    return {
        "project_id": field(project, "id"),
        "standard_id": field(standard, "id"),
        "overall_score": overall,
        "status": status,
        "criteria_results": results,
    }
