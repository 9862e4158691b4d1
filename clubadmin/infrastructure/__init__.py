"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (admin API, key-value stores,
console, configuration) by implementing the interfaces defined in the domain
layer. Also hosts the resilience services.
"""
