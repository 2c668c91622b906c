# Services package init
"""
Cemetery Records Service: Services Layer
=========================================

Business rules live here; routes only translate HTTP to service calls.
Each module exposes one stateless singleton (`grave_service`, ...). Methods
take the request's AsyncSession and only flush: the commit or rollback is
owned by `get_db_session`.

Service Inventory:
    - AuthService:        bearer token → user
    - FileService:        image validation, storage, best-effort cleanup
    - ClusterService:     clusters, with cascade to graves and instructions
    - GraveService:       graves, pictures, lease expiration alerts
    - InstructionService: visiting instructions and their ordered steps
    - RelationService:    user ↔ grave relations
    - RequestService:     service requests, status and audit logs
    - SearchService:      keyword search over graves and requests
    - UserService:        roles and bans
"""
