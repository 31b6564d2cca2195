"""ASGI entrypoint for the audit trail API."""

from audit_trail.api.app import create_app
from audit_trail.containers import build_container

app = create_app(build_container())
