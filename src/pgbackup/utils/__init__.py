"""Utility modules for docker-pg-backup."""
