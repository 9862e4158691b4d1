"""Resilience Implementations.

Contains the connectivity monitor, error classifier, retry executor, offline
operation queue and the facade composing them.
Bounded Context: Operation Resilience
"""
