"""Bounded question answering over the analytics views."""
