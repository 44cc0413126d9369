"""
Dry Craft API package.

A FastAPI service over a MongoDB document store for the Dry Craft
social/marketplace app, plus a small client mirroring how the web
frontend talks to it.
"""
