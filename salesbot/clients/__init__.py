"""Outbound HTTP clients (shared transport, WhatsApp gateway)."""
