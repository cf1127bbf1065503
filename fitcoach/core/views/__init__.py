"""
Role-specific views: what each page of the client and coach route trees
loads, derives and reports.

Import from the submodules (client, coach, lifetime, models) directly.
"""
