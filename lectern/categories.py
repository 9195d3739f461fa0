"""
lectern/categories.py
======================
Session Categories

A closed set of session categories, each carrying the instruction used to
steer the summary prompt. Anything outside the set is normalized to
GENERAL at the boundary, so the summary pipeline only ever sees a member.
"""

import logging
from enum import Enum

logger = logging.getLogger("lectern.categories")


class Category(str, Enum):
    """Allowed session category tags."""

    GENERAL = "general"
    SPORTS = "sports"
    ECONOMICS = "economics"
    TECHNOLOGY = "technology"
    EDUCATION = "education"
    BUSINESS = "business"
    MEDICAL = "medical"
    LEGAL = "legal"
    ENTERTAINMENT = "entertainment"
    SCIENCE = "science"

    @property
    def prompt(self) -> str:
        return _CATEGORY_PROMPTS[self]

    @classmethod
    def normalize(cls, value: "str | Category | None") -> "Category":
        """Map any input to a member; unknown or empty values become GENERAL."""
        if isinstance(value, Category):
            return value
        if not value:
            return cls.GENERAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown category %r, using 'general'.", value)
            return cls.GENERAL


_CATEGORY_PROMPTS: dict[Category, str] = {
    Category.GENERAL: (
        "Summarize the following lecture content as a list of clear, concise "
        "bullet points. Focus on key ideas, facts, and conclusions."
    ),
    Category.SPORTS: (
        "Summarize the following sports-related content as bullet points. "
        "Highlight game results, player info, strategies, and key moments."
    ),
    Category.ECONOMICS: (
        "Summarize the following economics-related content as bullet points. "
        "Include market trends, economic indicators, investment info, and key "
        "analysis."
    ),
    Category.TECHNOLOGY: (
        "Summarize the following technology-related content as bullet points. "
        "Focus on technical concepts, innovations, and main takeaways."
    ),
    Category.EDUCATION: (
        "Summarize the following education-related content as bullet points. "
        "Highlight learning objectives, key concepts, and educational value."
    ),
    Category.BUSINESS: (
        "Summarize the following business-related content as bullet points. "
        "Focus on business strategies, market analysis, and management "
        "insights."
    ),
    Category.MEDICAL: (
        "Summarize the following medical-related content as bullet points. "
        "Highlight medical info, treatment methods, and health management."
    ),
    Category.LEGAL: (
        "Summarize the following legal-related content as bullet points. "
        "Focus on legal issues, precedents, regulations, and main points."
    ),
    Category.ENTERTAINMENT: (
        "Summarize the following entertainment-related content as bullet "
        "points. Highlight work analysis, cultural significance, and trends."
    ),
    Category.SCIENCE: (
        "Summarize the following science-related content as bullet points. "
        "Focus on scientific principles, research results, and key findings."
    ),
}
