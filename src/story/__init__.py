# src/story/__init__.py — v1
