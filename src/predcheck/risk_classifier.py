# SPDX-License-Identifier: MIT
"""Risk band classification for predatory scores."""

from .constants import RISK_THRESHOLDS
from .enums import RiskLevel
from .models import RiskAssessment


_RISK_ASSESSMENTS: dict[RiskLevel, RiskAssessment] = {
    RiskLevel.VERY_HIGH: RiskAssessment(
        level=RiskLevel.VERY_HIGH,
        label="Very High Risk",
        color="#DC2626",
        description=(
            "Multiple sources indicate this is likely a predatory journal. "
            "Avoid publishing here."
        ),
    ),
    RiskLevel.HIGH: RiskAssessment(
        level=RiskLevel.HIGH,
        label="High Risk",
        color="#EA580C",
        description=(
            "Strong evidence suggests predatory practices. Exercise extreme caution."
        ),
    ),
    RiskLevel.MODERATE: RiskAssessment(
        level=RiskLevel.MODERATE,
        label="Moderate Risk",
        color="#F59E0B",
        description=(
            "Some concerning indicators found. Research thoroughly before submission."
        ),
    ),
    RiskLevel.LOW: RiskAssessment(
        level=RiskLevel.LOW,
        label="Low Risk",
        color="#84CC16",
        description="Minor concerns. Verify journal credibility independently.",
    ),
    RiskLevel.MINIMAL: RiskAssessment(
        level=RiskLevel.MINIMAL,
        label="Minimal Risk",
        color="#22C55E",
        description="No major red flags detected in our databases.",
    ),
}

RETRACTED_ASSESSMENT = RiskAssessment(
    level=RiskLevel.VERY_HIGH,
    label="RETRACTED",
    color="#DC2626",
    description="This paper has been officially retracted.",
)


def classify_level(score: int) -> RiskLevel:
    """
    Map a predatory score to its risk band.

    Bands are inclusive lower bounds checked highest first, so every integer
    falls into exactly one band.

    Examples:
        >>> classify_level(80)
        <RiskLevel.VERY_HIGH: 'very-high'>
        >>> classify_level(79)
        <RiskLevel.HIGH: 'high'>
        >>> classify_level(0)
        <RiskLevel.MINIMAL: 'minimal'>
    """
    if score >= RISK_THRESHOLDS.very_high:
        return RiskLevel.VERY_HIGH
    elif score >= RISK_THRESHOLDS.high:
        return RiskLevel.HIGH
    elif score >= RISK_THRESHOLDS.moderate:
        return RiskLevel.MODERATE
    elif score >= RISK_THRESHOLDS.low:
        return RiskLevel.LOW
    else:
        return RiskLevel.MINIMAL


def classify(score: int) -> RiskAssessment:
    """Return the full risk assessment (label, color, description) for a score."""
    return _RISK_ASSESSMENTS[classify_level(score)]


def retracted_assessment() -> RiskAssessment:
    """Return the terminal assessment used for retracted references."""
    return RETRACTED_ASSESSMENT
