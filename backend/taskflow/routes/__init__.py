# Routes package init
"""
TaskFlow Backend - API Routes Package
======================================

Route Inventory:
    - tasks.py:   /api/tasks and /api/tasks/{id}  (task CRUD, search, toggle)
    - health.py:  GET /                            (service descriptor)
                  GET /health                      (service health check)

Routes stay thin: parse the request, call the TaskStore, pick the status
code. Business rules live in services/.
"""
