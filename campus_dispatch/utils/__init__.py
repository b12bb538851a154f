"""Formatting and small helpers"""
