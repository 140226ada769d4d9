"""
FORMCOACH Evaluation Service - Message Catalog

Fixed, pre-approved feedback texts keyed by (exercise_id, rule_id, outcome).
Every text is worded as reference information: it starts with "Reference:"
and never uses diagnostic or medical vocabulary. The catalog is validated
once when it is built and cannot be changed afterwards.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


CATALOG_VERSION = "1.0.0"

GOOD_FORM_RULE_ID = "good_form"

MESSAGE_PREFIX = "Reference:"

# Vocabulary that would make feedback read as health advice
BANNED_TERMS = (
    "diagnos",
    "treat",
    "cure",
    "therapy",
    "injur",
    "pain",
    "medical",
    "heal",
    "rehab",
    "disease",
)


class Outcome(Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class FeedbackMessage:
    """A catalog entry: stable code plus the text handed to the voice/UI sink."""
    code: str
    text: str


MessageKey = Tuple[str, str, Outcome]


def build_message_code(exercise_id: str, rule_id: str, outcome: Outcome) -> str:
    """e.g. ('squat', 'knee_over_toe', FAIL) -> 'squat.knee_over_toe.fail'"""
    return f"{exercise_id}.{rule_id}.{outcome.value}"


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULT TEXTS
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_MESSAGE_TEXTS: Dict[MessageKey, str] = {
    # Squat
    ("squat", "knee_angle", Outcome.FAIL): "Reference: aim for a knee angle of about 90 to 110 degrees at the bottom.",
    ("squat", "knee_over_toe", Outcome.FAIL): "Reference: your knees are moving past your toes.",
    ("squat", "back_straight", Outcome.FAIL): "Reference: try to keep your back straight.",
    ("squat", GOOD_FORM_RULE_ID, Outcome.PASS): "Reference: form looks good.",

    # Push-up
    ("pushup", "elbow_angle", Outcome.FAIL): "Reference: lower until your elbows reach about 90 degrees.",
    ("pushup", "body_line", Outcome.FAIL): "Reference: keep your body in a straight line from shoulders to ankles.",
    ("pushup", GOOD_FORM_RULE_ID, Outcome.PASS): "Reference: form looks good.",

    # Arm curl
    ("armcurl", "elbow_angle", Outcome.FAIL): "Reference: curl until your elbow angle is about 30 to 50 degrees.",
    ("armcurl", "elbow_fixed", Outcome.FAIL): "Reference: keep your elbow close to your side.",
    ("armcurl", GOOD_FORM_RULE_ID, Outcome.PASS): "Reference: form looks good.",

    # Side raise
    ("sideraise", "arm_elevation", Outcome.FAIL): "Reference: raise your arms to about shoulder height.",
    ("sideraise", "symmetry", Outcome.FAIL): "Reference: try to raise both arms to the same height.",
    ("sideraise", GOOD_FORM_RULE_ID, Outcome.PASS): "Reference: form looks good.",

    # Shoulder press
    ("shoulderpress", "elbow_extension", Outcome.FAIL): "Reference: extend your arms fully at the top of the press.",
    ("shoulderpress", "wrist_above_head", Outcome.FAIL): "Reference: press your hands up above your head.",
    ("shoulderpress", GOOD_FORM_RULE_ID, Outcome.PASS): "Reference: form looks good.",
}


# ═══════════════════════════════════════════════════════════════════════════════
# CATALOG
# ═══════════════════════════════════════════════════════════════════════════════

def check_message_text(text: str) -> List[str]:
    """Return the compliance problems of a message text (empty when compliant)."""
    problems = []
    if not text.startswith(MESSAGE_PREFIX):
        problems.append(f"must start with {MESSAGE_PREFIX!r}")
    lowered = text.lower()
    for term in BANNED_TERMS:
        if term in lowered:
            problems.append(f"contains banned term {term!r}")
    return problems


class MessageCatalog:
    """
    Immutable, versioned mapping of (exercise_id, rule_id, outcome) to messages.

    Raises:
        ConfigurationError: if any text is non-compliant or an exercise has
            no good-form message
    """

    def __init__(self, texts: Mapping[MessageKey, str], version: str = CATALOG_VERSION):
        self._version = version

        entries: Dict[MessageKey, FeedbackMessage] = {}
        for (exercise_id, rule_id, outcome), text in texts.items():
            problems = check_message_text(text)
            if problems:
                raise ConfigurationError(
                    f"Message {exercise_id}/{rule_id}/{outcome.value} {', '.join(problems)}",
                    exercise_id=exercise_id,
                )
            code = build_message_code(exercise_id, rule_id, outcome)
            entries[(exercise_id, rule_id, outcome)] = FeedbackMessage(code=code, text=text)

        for exercise_id in {key[0] for key in entries}:
            if (exercise_id, GOOD_FORM_RULE_ID, Outcome.PASS) not in entries:
                raise ConfigurationError(
                    f"Exercise {exercise_id} has no good-form message",
                    exercise_id=exercise_id,
                )

        self._entries = MappingProxyType(entries)
        self._by_code = MappingProxyType({msg.code: msg for msg in entries.values()})

        logger.info(f"Message catalog v{version} loaded: {len(entries)} messages")

    @property
    def version(self) -> str:
        return self._version

    def lookup(self, exercise_id: str, rule_id: str, outcome: Outcome) -> Optional[FeedbackMessage]:
        return self._entries.get((exercise_id, rule_id, outcome))

    def good_form(self, exercise_id: str) -> Optional[FeedbackMessage]:
        return self.lookup(exercise_id, GOOD_FORM_RULE_ID, Outcome.PASS)

    def get_by_code(self, code: str) -> Optional[FeedbackMessage]:
        return self._by_code.get(code)

    def has_code(self, code: str) -> bool:
        return code in self._by_code

    def exercise_ids(self) -> List[str]:
        return sorted({key[0] for key in self._entries})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: MessageKey) -> bool:
        return key in self._entries


# Singleton instance
_message_catalog: Optional[MessageCatalog] = None


def get_message_catalog() -> MessageCatalog:
    """Get or create the message catalog singleton."""
    global _message_catalog
    if _message_catalog is None:
        _message_catalog = MessageCatalog(DEFAULT_MESSAGE_TEXTS)
    return _message_catalog
