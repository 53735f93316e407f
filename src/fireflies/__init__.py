"""Flocking fireflies with pulse-coupled phase synchronisation."""
