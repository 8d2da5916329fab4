"""
Data Transfer Objects (DTOs) Layer

Plain snapshots passed between services, decoupled from the database models.

Structure:
- internal/: DTOs for service-to-service communication
"""
