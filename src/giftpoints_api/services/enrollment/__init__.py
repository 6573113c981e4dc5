"""Member enrollment exports."""

from .member_enrollment import (  # noqa: F401
    WELCOME_BONUS_DESCRIPTION,
    EnrollmentResult,
    MemberEnrollmentService,
)
