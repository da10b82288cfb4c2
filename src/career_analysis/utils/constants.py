"""
This module centralizes the shared constants of the career analysis package.

It holds the literal value sets accepted in a user profile and in the
model's analysis payload, and the user-facing failure message.
"""

# =============================================================================
# Profile Value Sets
# =============================================================================

LOCATION_BANGLADESH = "Bangladesh"
LOCATION_INTERNATIONAL = "International"
LOCATIONS = (LOCATION_BANGLADESH, LOCATION_INTERNATIONAL)  # Canonical order.

EDUCATION_LEVELS = ("SSC", "HSC", "Diploma", "Honours", "Masters", "PhD")

# =============================================================================
# Analysis Payload Value Sets
# =============================================================================

SKILL_DIFFICULTIES = ("Beginner", "Intermediate", "Expert")
RISK_LEVELS = ("Low", "Medium", "High")

JOB_POSSIBILITY_TOTAL = 100  # Requested by the prompt, never enforced.

# =============================================================================
# Messages
# =============================================================================

GENERATION_FAILED_MESSAGE = "Failed to generate career analysis. Please try again."

# Placeholder used in the prompt when no experience was given.
MISSING_EXPERIENCE_TEXT = "None"
