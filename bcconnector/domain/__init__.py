"""Domain Layer: configuration values, request/response models, events and errors.

Contains no I/O. Infrastructure adapters implement the interfaces defined here.
"""
