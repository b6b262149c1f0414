"""Campus Attendance package.

Organized by feature modules (users, students, binding, attendance, geolocation)
with a thin Flask controller layer over service/repository layers.
"""
