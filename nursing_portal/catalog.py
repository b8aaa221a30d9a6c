"""Fixed value registries: nursing levels, rotations and file categories."""
from __future__ import annotations

NURSING_LEVELS: list[dict[str, str]] = [
    {"value": "first-year", "label": "First Year"},
    {"value": "second-year", "label": "Second Year"},
    {"value": "third-year", "label": "Third Year"},
    {"value": "fourth-year", "label": "Fourth Year"},
    {"value": "postgraduate", "label": "Postgraduate"},
]

CLINICAL_ROTATIONS: list[str] = [
    "Medical Ward",
    "Surgical Ward",
    "ICU/Critical Care",
    "Emergency Department",
    "Pediatrics",
    "Obstetrics & Gynecology",
    "Psychiatry",
    "Community Health",
    "Operating Theatre",
    "Maternity Ward",
]

DOCUMENT_CATEGORIES: list[dict[str, str]] = [
    {"value": "assignments", "label": "Assignments"},
    {"value": "clinical-reports", "label": "Clinical Reports"},
    {"value": "care-plans", "label": "Care Plans"},
    {"value": "case-studies", "label": "Case Studies"},
    {"value": "research", "label": "Research Papers"},
    {"value": "presentations", "label": "Presentations"},
    {"value": "portfolios", "label": "Portfolios"},
]

RESOURCE_CATEGORIES: list[dict[str, str]] = [
    {"value": "lecture-notes", "label": "Lecture Notes"},
    {"value": "study-guides", "label": "Study Guides"},
    {"value": "textbooks", "label": "Textbooks & References"},
    {"value": "case-studies", "label": "Case Studies"},
    {"value": "procedures", "label": "Clinical Procedures"},
    {"value": "assessments", "label": "Assessment Tools"},
    {"value": "videos", "label": "Video Resources"},
    {"value": "research", "label": "Research Articles"},
]

LEVEL_VALUES: set[str] = {item["value"] for item in NURSING_LEVELS}
DOCUMENT_CATEGORY_VALUES: set[str] = {item["value"] for item in DOCUMENT_CATEGORIES}
RESOURCE_CATEGORY_VALUES: set[str] = {item["value"] for item in RESOURCE_CATEGORIES}


def _label(registry: list[dict[str, str]], value: str) -> str:
    for item in registry:
        if item["value"] == value:
            return item["label"]
    return value


def level_label(value: str) -> str:
    return _label(NURSING_LEVELS, value)


def document_category_label(value: str) -> str:
    return _label(DOCUMENT_CATEGORIES, value)


def resource_category_label(value: str) -> str:
    return _label(RESOURCE_CATEGORIES, value)
