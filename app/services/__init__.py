"""
Services layer - Business logic goes here.
Keep services focused on specific domains (issues, users, categorization, ...)

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Role rules live in data tables (status_workflow, access_scope), not branches
- External collaborators (classifier, photo storage) answer before anything is written
"""
