"""Batch engine services: dispatch, change filtering, profiles and storage."""
