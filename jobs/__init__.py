"""
Scheduled background jobs, run via CRON with python -m jobs.<name>.
"""
