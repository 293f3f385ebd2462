"""Request-scoped accessors for the services built in create_app()."""
from fastapi import Request

from .auth.security import get_settings
from .services.home_org import HomeOrgService
from .services.notifications import NotificationDispatcher
from .services.reminders import ReminderScheduler
from .services.signups import SignupReconciler
from .services.volunteers import VolunteerResolver
from .store.factory import get_store

__all__ = [
    "get_settings",
    "get_store",
    "get_resolver",
    "get_reconciler",
    "get_dispatcher",
    "get_reminders",
    "get_home_org_service",
]


def get_resolver(request: Request) -> VolunteerResolver:
    return request.app.state.resolver


def get_reconciler(request: Request) -> SignupReconciler:
    return request.app.state.reconciler


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_reminders(request: Request) -> ReminderScheduler:
    return request.app.state.reminders


def get_home_org_service(request: Request) -> HomeOrgService:
    return request.app.state.home_org
