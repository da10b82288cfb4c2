"""
This package contains the career report store gateway.

It persists each generated career report exactly once and reads reports back
by id or by owner, on Google Cloud Firestore or on local JSON files.
"""
