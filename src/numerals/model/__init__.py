"""Pydantic models shared by the engine and processing layers."""
