"""CLI commands for docker-pg-backup.

Commands:
    run: perform one backup
    config show: print the resolved settings
    config validate: check settings and credentials without dumping
"""
