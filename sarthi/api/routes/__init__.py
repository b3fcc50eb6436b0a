"""API route handlers for Sarthi."""

from sarthi.api.routes import chat as chat
from sarthi.api.routes import health as health
from sarthi.api.routes import users as users
