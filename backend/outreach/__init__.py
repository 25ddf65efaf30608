"""Volunteer outreach campaign coordinator."""
