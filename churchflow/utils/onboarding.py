import re
from pydantic import ValidationError

from churchflow.exceptions import OnboardingStepError
from churchflow.models import SubscriptionTier
from churchflow.schemas.auth import EMAIL_RE
from churchflow.schemas.church import OnboardingRequest

DEFAULT_MODULES = [
    "members",
    "events",
    "donations",
    "checkin",
    "communications",
    "groups",
    "volunteers",
]

ONBOARDING_STEPS = {
    1: "Church information",
    2: "Contact & location",
    3: "Church size",
    4: "Review",
}
FIRST_STEP = min(ONBOARDING_STEPS)
LAST_STEP = max(ONBOARDING_STEPS)


def tier_for_attendance(average_attendance: str | None) -> SubscriptionTier:
    """
    Suggests a subscription tier from the attendance bracket picked during
    onboarding, e.g. "0-100", "251-500" or "2500+".
    """
    if not average_attendance:
        return SubscriptionTier.free

    numbers = [int(n) for n in re.findall(r"\d+", average_attendance)]
    if "+" in average_attendance or (numbers and max(numbers) > 2500):
        return SubscriptionTier.enterprise
    if not numbers:
        return SubscriptionTier.free

    upper = max(numbers)
    if upper >= 1000:
        return SubscriptionTier.premium
    if upper >= 250:
        return SubscriptionTier.standard
    if upper >= 100:
        return SubscriptionTier.basic
    return SubscriptionTier.free


class OnboardingWizard:
    """
    Server-side model of the multi-step onboarding form.

    Field values accumulate across steps; advancing runs the checks of the
    step being left, so a step cannot be skipped with invalid input.
    """

    def __init__(self, **data):
        self.step = FIRST_STEP
        self.data: dict = {}
        self.update(**data)

    def update(self, **fields) -> None:
        unknown = set(fields) - set(OnboardingRequest.model_fields)
        if unknown:
            raise OnboardingStepError(self.step, f"Unknown fields: {sorted(unknown)}")
        self.data.update(fields)

    def validate_step(self, step: int) -> None:
        if step == 1:
            if not (self.data.get("church_name") or "").strip():
                raise OnboardingStepError(1, "Church name is required")
        elif step == 2:
            email = self.data.get("email")
            if email and not EMAIL_RE.match(email.strip()):
                raise OnboardingStepError(2, "Invalid email address")

    def advance(self) -> int:
        if self.step == LAST_STEP:
            raise OnboardingStepError(self.step, "Already at the final step")
        self.validate_step(self.step)
        self.step += 1
        return self.step

    def back(self) -> int:
        if self.step > FIRST_STEP:
            self.step -= 1
        return self.step

    @property
    def suggested_tier(self) -> SubscriptionTier:
        return tier_for_attendance(self.data.get("average_attendance"))

    def to_request(self) -> OnboardingRequest:
        for step in ONBOARDING_STEPS:
            self.validate_step(step)
        try:
            return OnboardingRequest(**self.data)
        except ValidationError as exc:
            raise OnboardingStepError(self.step, str(exc)) from exc
