"""Scraper and normalizer for the NYPD Online officer roster."""
