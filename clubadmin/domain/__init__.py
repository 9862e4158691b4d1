"""Domain Layer: value objects, events and ports with no infrastructure dependencies."""
