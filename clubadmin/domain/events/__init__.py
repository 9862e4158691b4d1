"""Domain Event definitions.

Represents significant occurrences within the domain that other parts
of the system might react to (connectivity transitions, retries, queue
replays, contained render failures).
"""
