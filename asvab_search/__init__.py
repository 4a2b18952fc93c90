# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — multi-content search for ASVAB exam preparation.

Relevance-scored search across questions, flashcards, military jobs and
study groups, with facets, suggestions, personalization and analytics.
"""

__version__ = "1.0.0"
__author__ = "ASVAB Prep Team"

__all__ = ["__version__"]
