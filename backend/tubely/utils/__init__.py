"""Helpers for logging, request body limits and upload validation."""
