"""
Reactive session handling.

The router itself is pure (router.py). This module adds the part that
changes over time: the identity snapshot published by the auth
collaborator, the path the user is on, and the fetches of the view that is
currently mounted.

There is no global auth holder. Whoever needs the identity receives the
`IdentityObserver` (or a snapshot taken from it) explicitly.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from ..views.lifetime import ViewTaskRegistry
from .models import AuthFormMode, AuthSnapshot, Identity
from .roles import DEFAULT_COACH_MARKERS
from .router import RouteDecision, normalize_path, resolve_route, route_tree_for

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[AuthSnapshot], None]
DecisionListener = Callable[[RouteDecision], None]


class IdentityObserver:
    """
    Observable `{identity, loading}` pair.

    Starts in the loading state until the auth collaborator publishes an
    answer. New subscribers receive the current snapshot immediately.
    """

    def __init__(self, initial: Optional[AuthSnapshot] = None) -> None:
        self._snapshot = initial or AuthSnapshot.pending()
        self._listeners: list[SnapshotListener] = []

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)
        listener(self._snapshot)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: AuthSnapshot) -> None:
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    def signed_in(self, identity: Identity) -> None:
        self.publish(AuthSnapshot.signed_in(identity))

    def signed_out(self) -> None:
        self.publish(AuthSnapshot.signed_out())

    def loading(self) -> None:
        self.publish(AuthSnapshot.pending())


class SessionController:
    """
    Keeps the route decision in sync with identity and navigation.

    - identity changes re-run route selection; fetches that belong to a
      route tree the user can no longer see are cancelled (sign-out, role
      change)
    - navigating away from a view cancels that view's fetch
    - mounting a view starts its fetch through the task registry, keyed by
      path, so a re-mount supersedes the previous fetch
    """

    def __init__(
        self,
        observer: IdentityObserver,
        path: str = "/",
        markers: Iterable[str] = DEFAULT_COACH_MARKERS,
        registry: Optional[ViewTaskRegistry] = None,
    ) -> None:
        self._observer = observer
        self._markers = tuple(markers)
        self._path = normalize_path(path)
        self._auth_mode = AuthFormMode.SIGN_IN
        self._registry = registry or ViewTaskRegistry()
        self._listeners: list[DecisionListener] = []
        self._decision = self._resolve(observer.snapshot)
        self._unsubscribe = observer.subscribe(self._on_snapshot)

    @property
    def decision(self) -> RouteDecision:
        return self._decision

    @property
    def auth_mode(self) -> AuthFormMode:
        return self._auth_mode

    @property
    def registry(self) -> ViewTaskRegistry:
        return self._registry

    def subscribe(self, listener: DecisionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def navigate(self, path: str) -> RouteDecision:
        """Move to `path`, unmounting whatever view was shown before."""
        self._path = normalize_path(path)
        self._update(self._resolve(self._observer.snapshot))
        return self._decision

    def toggle_auth_mode(self) -> AuthFormMode:
        """Swap between the sign-in and sign-up forms."""
        self._auth_mode = self._auth_mode.toggled()
        self._update(self._resolve(self._observer.snapshot))
        return self._auth_mode

    def mount(
        self,
        loader: Callable[[RouteDecision], Awaitable],
    ) -> Optional[asyncio.Task]:
        """
        Start the current view's fetch.

        Returns None when the current decision has no route content
        (loading, auth form, not-found). Must be called from a running loop.
        """
        decision = self._decision
        if not decision.renders_route_content:
            return None
        return self._registry.start(decision.path, loader(decision))

    def close(self) -> None:
        self._unsubscribe()
        cancelled = self._registry.cancel_all()
        if cancelled:
            logger.debug("Closed session with pending fetches", extra={"cancelled": cancelled})

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _resolve(self, snapshot: AuthSnapshot) -> RouteDecision:
        return resolve_route(snapshot, self._path, self._auth_mode, self._markers)

    def _on_snapshot(self, snapshot: AuthSnapshot) -> None:
        self._update(self._resolve(snapshot))

    def _update(self, decision: RouteDecision) -> None:
        previous = self._decision
        self._decision = decision
        # Redirects replace the requested path
        self._path = decision.path

        tree = route_tree_for(decision.state)
        cancelled = self._registry.cancel_where(
            lambda key: key != decision.path or tree is None or not tree.owns(key)
        )
        if cancelled:
            logger.info(
                "Cancelled fetches of unmounted views",
                extra={"count": cancelled, "state": decision.state.value},
            )

        if decision != previous:
            for listener in list(self._listeners):
                listener(decision)
