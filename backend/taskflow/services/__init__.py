# Services package init
"""
TaskFlow Backend - Services Package
====================================

What:  Business logic, independent of HTTP.

Service Inventory:
    - task_store.py: TaskStore (task CRUD, search, pagination)
"""
