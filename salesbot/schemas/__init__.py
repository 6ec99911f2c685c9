"""Pydantic models for requests, responses and sales API payloads."""
