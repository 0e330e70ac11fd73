"""Configuration, crypto and cross-cutting helpers."""
