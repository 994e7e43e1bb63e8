"""Core Application Layer: the API connector and CLI use cases.

Connects the domain layer with the infrastructure layer through interfaces.
"""
