"""
Book catalog feature: HTTP routes, upload intake, SQL and S3 orchestration.
"""
