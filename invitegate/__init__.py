"""Invite-gated identity and session service."""
