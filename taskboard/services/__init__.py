"""
Taskboard Services Package

Business rules that sit between the HTTP routes and the DB handlers:

- pending_tasks: keeps User.pending_tasks in step with task assignment
- task_service: task create / replace / delete with pending-list maintenance
- user_service: user creation with batch task assignment, update, delete cascade
- query_builder: list-endpoint query string to SQLAlchemy translation
"""
