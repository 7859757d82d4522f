from enum import Enum

from .exceptions import StateTransitionError


class DriverState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_CONSENT = "awaiting_consent"
    AWAITING_LOGIN = "awaiting_login"
    READY = "ready"
    SUBMITTING = "submitting"
    AWAITING_IMAGE = "awaiting_image"
    DOWNLOADING = "downloading"
    DONE = "done"
    REFUSED = "refused"
    TIMED_OUT = "timed_out"


S = DriverState

TRANSITIONS: dict[DriverState, frozenset[DriverState]] = {
    S.UNAUTHENTICATED: frozenset({S.AWAITING_CONSENT, S.AWAITING_LOGIN, S.READY}),
    S.AWAITING_CONSENT: frozenset({S.AWAITING_LOGIN, S.READY}),
    S.AWAITING_LOGIN: frozenset({S.READY, S.REFUSED, S.TIMED_OUT}),
    S.READY: frozenset({S.SUBMITTING}),
    S.SUBMITTING: frozenset({S.AWAITING_IMAGE}),
    S.AWAITING_IMAGE: frozenset({S.DOWNLOADING, S.REFUSED, S.TIMED_OUT}),
    # Exhausted download retries end the request as timed out
    S.DOWNLOADING: frozenset({S.DONE, S.TIMED_OUT}),
    S.DONE: frozenset(),
    S.REFUSED: frozenset(),
    S.TIMED_OUT: frozenset(),
}

TERMINAL_STATES = frozenset({S.DONE, S.REFUSED, S.TIMED_OUT})

# States from which a page that reached READY can start another request
REQUEST_START_STATES = frozenset({S.READY, S.SUBMITTING, S.AWAITING_IMAGE, S.DOWNLOADING, *TERMINAL_STATES})


class StateMachine:
    """Tracks where the page driver is in the login/generation flow."""

    def __init__(self, initial: DriverState = DriverState.UNAUTHENTICATED):
        self.state = initial
        self.history: list[DriverState] = [initial]
        # READY reached since the last reset; a login-phase TIMED_OUT leaves this False
        self._logged_in = initial in REQUEST_START_STATES

    def can_advance(self, target: DriverState) -> bool:
        return target in TRANSITIONS[self.state]

    def advance(self, target: DriverState) -> DriverState:
        if not self.can_advance(target):
            raise StateTransitionError(self.state.value, target.value)
        self.state = target
        self.history.append(target)
        if target == DriverState.READY:
            self._logged_in = True
        return target

    @property
    def authenticated(self) -> bool:
        return self._logged_in and self.state in REQUEST_START_STATES

    def begin_request(self) -> DriverState:
        """Return to READY for a new prompt on an already logged-in page.

        Terminal states end one request, not the session: the next prompt
        starts from a fresh chat on the same page.
        """
        if not self.authenticated:
            raise StateTransitionError(self.state.value, DriverState.READY.value)
        self.state = DriverState.READY
        self.history.append(DriverState.READY)
        return self.state

    def reset(self):
        self.state = DriverState.UNAUTHENTICATED
        self._logged_in = False
        self.history.append(self.state)
