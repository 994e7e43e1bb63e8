"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (HTTP, configuration files,
console) by implementing the interfaces defined in the domain layer.
Also includes the resilience services used by the connector.
"""
