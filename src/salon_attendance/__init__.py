"""Salon attendance backend.

This package is organized by feature modules (subjects, attendance, requests,
faces, assets, ...) with a thin Flask controller layer and service/repository
layers underneath.
"""
