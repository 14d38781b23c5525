# file: coachfee/core/deps.py
"""
FastAPI dependencies. Long-lived collaborators are created on first use and
kept on app.state; tests replace them with app.dependency_overrides.
"""
from fastapi import Depends, FastAPI, Request

from coachfee.core.firebase import get_db
from coachfee.notification.dispatcher import SmsDispatcher
from coachfee.notification.textbee_gateway import TextBeeGateway
from coachfee.payment.firestore_adapter import FirestoreStore
from coachfee.payment.payment_orchestrator import MarkPaidOrchestrator
from coachfee.payment.reconciler import PaymentSession


def store_for(app: FastAPI) -> FirestoreStore:
    store = getattr(app.state, "store", None)
    if store is None:
        store = app.state.store = FirestoreStore(get_db())
    return store


def session_for(app: FastAPI) -> PaymentSession:
    session = getattr(app.state, "session", None)
    if session is None:
        session = app.state.session = PaymentSession()
    return session


def get_store(request: Request) -> FirestoreStore:
    return store_for(request.app)


def get_session(request: Request) -> PaymentSession:
    return session_for(request.app)


def get_gateway(request: Request) -> TextBeeGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = request.app.state.gateway = TextBeeGateway()
    return gateway


def get_dispatcher(
    gateway=Depends(get_gateway),
    store=Depends(get_store),
) -> SmsDispatcher:
    return SmsDispatcher(gateway, store)


def get_orchestrator(
    request: Request,
    store=Depends(get_store),
    dispatcher=Depends(get_dispatcher),
    session=Depends(get_session),
) -> MarkPaidOrchestrator:
    background = getattr(request.app.state, "background_tasks", None)
    if background is None:
        background = request.app.state.background_tasks = set()
    return MarkPaidOrchestrator(store, dispatcher, session, background=background)
