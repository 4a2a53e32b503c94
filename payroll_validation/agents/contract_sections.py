"""Collective bargaining agreement (CBA) sections cited by the evaluators."""

from typing import Any, Dict, List

CONTRACT_SECTIONS: Dict[str, Dict[str, str]] = {
    "7.2": {
        "section": "CBA Section 7.2",
        "title": "Flight Time Credit",
        "text": (
            "Flight time is measured from blocks-off to blocks-on. Credit hours may "
            "exceed actual flight hours where the pairing guarantee applies."
        ),
    },
    "9.1": {
        "section": "CBA Section 9.1",
        "title": "Duty and Rest Limits",
        "text": (
            "A duty period shall not exceed 14 hours. Crew members are entitled to a "
            "minimum rest period of 10 hours between duty periods."
        ),
    },
    "12.4": {
        "section": "CBA Section 12.4",
        "title": "International Premium",
        "text": (
            "$125 per flight segment to destinations outside the continental United "
            "States, including Central America, South America and the Caribbean."
        ),
    },
    "13.2": {
        "section": "CBA Section 13.2",
        "title": "Per Diem",
        "text": (
            "Crew members on an overnight layover receive per diem of $75 per night "
            "for domestic layovers. International layovers are paid at the published "
            "international rate."
        ),
    },
    "14.3": {
        "section": "CBA Section 14.3",
        "title": "Night Premium",
        "text": "$5 per hour for flights operating between 2200 and 0600 local time.",
    },
    "15.2": {
        "section": "CBA Section 15.2",
        "title": "Holiday Premium",
        "text": (
            "1.5x the hourly rate for work on major holidays: New Year's Day, Memorial "
            "Day, Independence Day, Thanksgiving and Christmas."
        ),
    },
    "16.1": {
        "section": "CBA Section 16.1",
        "title": "Monthly Minimum Guarantee",
        "text": (
            "Lineholders and reserves are guaranteed a minimum of 75 credit hours per "
            "bid period, prorated for absences."
        ),
    },
    "18.5": {
        "section": "CBA Section 18.5",
        "title": "Reserve Call-Out",
        "text": "A reserve crew member called out is paid a minimum of 4 hours at the regular rate.",
    },
    "20.2": {
        "section": "CBA Section 20.2",
        "title": "Training Premium",
        "text": "$75 per day for recurrent training days.",
    },
    "24.1": {
        "section": "CBA Section 24.1",
        "title": "Pay Claim Filing",
        "text": (
            "Pay claims must be filed within 7 days of trip completion. Only one claim "
            "per trip per crew member per pay type is permitted. Claims over $100 "
            "require supporting documentation."
        ),
    },
    "27.3": {
        "section": "CBA Section 27.3",
        "title": "Pay Disputes",
        "text": (
            "A crew member may dispute a pay determination within 30 days. The company "
            "shall respond in writing with the contract basis for its determination."
        ),
    },
}

# claim type -> [(section key, relevance)]
CLAIM_TYPE_SECTIONS: Dict[str, List[tuple]] = {
    "per-diem": [("13.2", 0.95), ("24.1", 0.5)],
    "international-premium": [("12.4", 0.95), ("24.1", 0.5)],
    "holiday-pay": [("15.2", 0.95), ("24.1", 0.5)],
    "night-premium": [("14.3", 0.95), ("24.1", 0.5)],
    "lead-premium": [("24.1", 0.5)],
    "layover-premium": [("13.2", 0.7), ("24.1", 0.5)],
    "training": [("20.2", 0.95), ("24.1", 0.5)],
    "overtime": [("7.2", 0.8), ("9.1", 0.7), ("24.1", 0.5)],
    "reserve-callout": [("18.5", 0.95), ("16.1", 0.6), ("24.1", 0.5)],
    "guarantee": [("16.1", 0.95), ("7.2", 0.6), ("24.1", 0.5)],
    "flight-time": [("7.2", 0.95), ("24.1", 0.5)],
    "duty-time": [("9.1", 0.95), ("24.1", 0.5)],
    "deadhead": [("7.2", 0.8), ("9.1", 0.6), ("24.1", 0.5)],
    "dispute": [("27.3", 0.95), ("24.1", 0.5)],
}


def sections_for_claim_type(claim_type: str) -> List[Dict[str, Any]]:
    """
    Contract references applicable to a claim type.

    Args:
        claim_type: Normalized claim type (e.g. "per-diem")

    Returns:
        List of camelCase reference dicts (section, title, text, relevance)
    """
    references = []
    for key, relevance in CLAIM_TYPE_SECTIONS.get(claim_type, []):
        entry = dict(CONTRACT_SECTIONS[key])
        entry["relevance"] = relevance
        references.append(entry)
    return references


def format_sections(references: List[Dict[str, Any]], max_text: int = 200) -> str:
    """Render references for inclusion in a prompt."""
    lines = []
    for ref in references:
        lines.append(f"- {ref['section']}: {ref['title']}")
        lines.append(f"  {ref['text'][:max_text]}")
    return "\n".join(lines)


def merge_references(
    primary: List[Dict[str, Any]],
    secondary: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Union of two reference lists, first occurrence of each section wins."""
    merged: List[Dict[str, Any]] = []
    seen = set()
    for ref in list(primary) + list(secondary):
        if not isinstance(ref, dict):
            continue
        section = ref.get("section")
        if not section or section in seen:
            continue
        seen.add(section)
        merged.append(ref)
    return merged
