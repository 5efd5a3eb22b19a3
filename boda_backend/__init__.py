"""Boda supplier booking backend."""
