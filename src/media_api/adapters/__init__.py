"""
Adapter layer for the Wedding Media API.

Contains the storage adapters (local disk / Cloudinary) behind the single
`MediaStore` contract, selected by the `storage_backend` setting.
"""
