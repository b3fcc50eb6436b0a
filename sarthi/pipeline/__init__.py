"""Conversation pipeline stages and the coordinator that runs them."""
