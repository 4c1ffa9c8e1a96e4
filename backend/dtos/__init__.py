"""
Data Transfer Objects (DTOs) Layer

This package contains DTOs that decouple callers of the data store from the
database models.

Structure:
- request/: DTOs validating caller input before storage is touched
- response/: read models returned by the store
"""
