# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""Concept extraction over a fixed ASVAB vocabulary."""

from __future__ import annotations

MATH_CONCEPTS: tuple[str, ...] = (
    "algebra",
    "geometry",
    "arithmetic",
    "fractions",
    "decimals",
    "percentages",
    "equations",
    "ratios",
    "proportions",
    "statistics",
    "probability",
)

MILITARY_CONCEPTS: tuple[str, ...] = (
    "military",
    "army",
    "navy",
    "air force",
    "marines",
    "coast guard",
    "space force",
    "combat",
    "tactics",
    "strategy",
    "logistics",
    "operations",
    "deployment",
)

SUBJECT_CONCEPTS: tuple[str, ...] = (
    "reading",
    "comprehension",
    "vocabulary",
    "grammar",
    "writing",
    "science",
    "physics",
    "chemistry",
    "biology",
    "technology",
)

CONCEPT_VOCABULARY: tuple[str, ...] = MATH_CONCEPTS + MILITARY_CONCEPTS + SUBJECT_CONCEPTS

MIN_FALLBACK_TOKEN_LENGTH = 3


def extract_concepts(query: str) -> list[str]:
    """Return vocabulary terms found in *query* (substring match).

    When no vocabulary term matches, fall back to the query's own
    lower-cased tokens longer than two characters.
    """
    lowered = query.lower()
    concepts = [term for term in CONCEPT_VOCABULARY if term in lowered]
    if concepts:
        return concepts

    fallback: list[str] = []
    for token in lowered.split():
        if len(token) >= MIN_FALLBACK_TOKEN_LENGTH and token not in fallback:
            fallback.append(token)
    return fallback
