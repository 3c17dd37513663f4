"""Firmdesk: multi-tenant workspace membership, invitations, documents and threads."""
