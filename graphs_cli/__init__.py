"""Command line client for the Graphs API."""
