"""Room synchronization services: subscriptions, mutations, stream sessions
and the idle-room sweeper.

These modules hold the synchronization logic and are imported by the HTTP
blueprints, keeping transport concerns separated from room state handling.
"""
