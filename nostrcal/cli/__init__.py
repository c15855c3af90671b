"""Command line programs for the calendar client."""
