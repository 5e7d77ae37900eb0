"""Switchboard FastAPI application."""
