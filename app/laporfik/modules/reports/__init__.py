"""
Facility reports: submission, status lifecycle, and follow-up messages.
"""
