"""API Resilience Implementations.

Contains services for retrying rate-limited (429) requests, bounding the
number of in-flight requests and cancelling pending calls.
Bounded Context: API Resilience
"""
