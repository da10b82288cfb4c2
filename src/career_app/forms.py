"""
Validation of the career profile intake form.

Browsers submit every field as text; this module turns the raw values into a
`UserProfile` or a single message for the first invalid field.
"""

from typing import List, Optional

from pydantic import ValidationError

from ..career_analysis.models import UserProfile
from ..career_analysis.utils.constants import EDUCATION_LEVELS, LOCATIONS


class ProfileFormError(ValueError):
    """Raised when the submitted form does not describe a valid profile."""


def parse_experience(raw: Optional[str]) -> Optional[int]:
    """Converts the experience field to whole years; blank means not given."""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        years = int(raw)
    except ValueError:
        raise ProfileFormError(
            "Experience must be a whole number of years (0 or more)."
        ) from None
    if years < 0:
        raise ProfileFormError("Experience must be a whole number of years (0 or more).")
    return years


def parse_profile_form(
    target_job: Optional[str],
    location: Optional[List[str]],
    education: Optional[str],
    skills: Optional[str],
    experience: Optional[str],
) -> UserProfile:
    """
    Validates the raw form values and builds a `UserProfile`.

    Raises:
        ProfileFormError: With a user-facing message for the first invalid field.
    """
    if not (target_job or "").strip():
        raise ProfileFormError("Please enter a target job.")
    selected = [loc for loc in (location or []) if loc in LOCATIONS]
    if not selected:
        raise ProfileFormError("Please select at least one location preference.")
    if education not in EDUCATION_LEVELS:
        raise ProfileFormError("Please select your education level.")
    if not (skills or "").strip():
        raise ProfileFormError("Please list your current skills.")
    years = parse_experience(experience)

    try:
        return UserProfile(
            target_job=target_job,
            location=selected,
            education=education,
            skills=skills,
            experience=years,
        )
    except ValidationError as e:
        raise ProfileFormError("Please check the form and try again.") from e
