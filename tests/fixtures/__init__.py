"""Test fixtures: scripted reasoning and a recording transport."""
