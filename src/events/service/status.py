"""The event status state machine.

```
DRAFT      -> PUBLISHED, CANCELLED
PUBLISHED  -> LIVE, CANCELLED, DRAFT
LIVE       -> SOLD_OUT, COMPLETED, CANCELLED
SOLD_OUT   -> COMPLETED, CANCELLED, LIVE (system only)
CANCELLED, COMPLETED are terminal
```

Organizers may only follow the table. The system follows the table and is the only actor
allowed to reopen a sold out event. Admins may force any transition out of a non-terminal state.
"""

import enum

from events.exceptions import InvalidStatusTransitionError
from events.models import TERMINAL_STATUSES, EventStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    EventStatus.DRAFT: frozenset({EventStatus.PUBLISHED, EventStatus.CANCELLED}),
    EventStatus.PUBLISHED: frozenset({EventStatus.LIVE, EventStatus.CANCELLED, EventStatus.DRAFT}),
    EventStatus.LIVE: frozenset({EventStatus.SOLD_OUT, EventStatus.COMPLETED, EventStatus.CANCELLED}),
    EventStatus.SOLD_OUT: frozenset({EventStatus.COMPLETED, EventStatus.CANCELLED, EventStatus.LIVE}),
    EventStatus.CANCELLED: frozenset(),
    EventStatus.COMPLETED: frozenset(),
}

SYSTEM_ONLY_TRANSITIONS = frozenset({(EventStatus.SOLD_OUT, EventStatus.LIVE)})


class Actor(enum.StrEnum):
    ORGANIZER = "organizer"
    ADMIN = "admin"
    SYSTEM = "system"


def allowed_targets(current: str, actor: Actor = Actor.ORGANIZER) -> list[str]:
    """Statuses the actor may move an event to from ``current``."""
    if current in TERMINAL_STATUSES:
        return []
    if actor == Actor.ADMIN:
        return [status for status in EventStatus.values if status != current]
    targets = ALLOWED_TRANSITIONS[current]
    if actor == Actor.ORGANIZER:
        targets = frozenset(target for target in targets if (current, target) not in SYSTEM_ONLY_TRANSITIONS)
    return sorted(targets)


def check_transition(current: str, target: str, actor: Actor = Actor.ORGANIZER) -> None:
    """Raise ``InvalidStatusTransitionError`` unless the actor may move from ``current`` to ``target``."""
    allowed = allowed_targets(current, actor)
    if target not in allowed:
        raise InvalidStatusTransitionError(current, target, allowed)
