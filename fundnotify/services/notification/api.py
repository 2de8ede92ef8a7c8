"""HTTP delivery surface over one notification reconciler."""

from fastapi import APIRouter, FastAPI

from fundnotify.common.metrics import metrics_response
from fundnotify.services.notification.schemas import (
    DismissResponse,
    NotificationRecord,
    RoleChangeRequest,
    SessionResponse,
    SessionStartRequest,
)
from fundnotify.services.notification.service import EventReconciler


def build_router(reconciler: EventReconciler) -> APIRouter:
    """Routes for listing/dismissing notifications and driving the session."""

    router = APIRouter()

    def session_view() -> SessionResponse:
        return SessionResponse(
            state=reconciler.session_state,
            recipient=reconciler.recipient,
            subscription_connected=reconciler.subscription_connected,
            notification_count=len(reconciler.feed),
        )

    @router.get("/notifications", response_model=list[NotificationRecord])
    async def list_notifications():
        """Current feed, newest first."""

        return reconciler.list_notifications()

    @router.post("/notifications/dismiss-all", response_model=DismissResponse)
    async def dismiss_all():
        count, durable = reconciler.dismiss_all()
        return DismissResponse(dismissed=count, durable=durable)

    @router.post("/notifications/{notification_id}/dismiss", response_model=DismissResponse)
    async def dismiss(notification_id: str):
        durable = reconciler.dismiss(notification_id)
        return DismissResponse(dismissed=1, durable=durable)

    @router.get("/session", response_model=SessionResponse)
    async def get_session():
        return session_view()

    @router.post("/session", response_model=SessionResponse)
    async def start_session(req: SessionStartRequest):
        """Called by the wallet layer once a recipient is connected."""

        await reconciler.start(req.recipient, req.role)
        return session_view()

    @router.put("/session/role", response_model=SessionResponse)
    async def change_role(req: RoleChangeRequest):
        await reconciler.change_role(req.role)
        return session_view()

    @router.delete("/session", response_model=SessionResponse)
    async def end_session():
        """Logout: tear the session down; dismissals stay persisted."""

        await reconciler.teardown("logout")
        return session_view()

    @router.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    @router.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return router


def create_app(reconciler: EventReconciler, lifespan=None) -> FastAPI:
    app = FastAPI(title="Funding Notifier", lifespan=lifespan)
    app.include_router(build_router(reconciler))
    return app
