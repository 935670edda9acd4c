"""Daycare management package.

This package is organized by feature modules (children, attendance, reports, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
