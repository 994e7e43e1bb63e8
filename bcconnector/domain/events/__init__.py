"""Domain Event definitions.

Represents significant occurrences during request execution (dispatch,
throttling, completion) that callers may observe through an event listener.
"""
