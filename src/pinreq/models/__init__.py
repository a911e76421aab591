"""Pinreq data models."""
