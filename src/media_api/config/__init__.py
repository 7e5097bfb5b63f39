"""
Configuration management for the Wedding Media API.

Contains the Pydantic settings that select the storage backend (local disk or
Cloudinary) and carry its credentials, limits and server options.
"""
