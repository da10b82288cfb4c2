"""
This package contains the CareerGap web application.

It serves the profile intake form, the dashboard of a user's reports and
the detail report page, backed by the career analysis requester and the
report store.

Usage:
------
    $ python -m src.career_app.main
"""
