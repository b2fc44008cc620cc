"""School Attendance package.

This package is organized by feature modules (school_years, classes,
enrollments, placement, ...) with a thin Flask controller layer and
service/repository layers underneath.
"""
