"""Test helpers: fakes for the launcher, the console client and time."""
