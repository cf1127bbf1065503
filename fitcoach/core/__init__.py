"""
Core logic for the coaching application.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Role resolution, route selection and view
assembly can be tested in isolation from the HTTP layer and the warehouse.
"""
