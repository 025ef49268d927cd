"""
Certificates Module

Handles certificate templates and the certificate lifecycle:
1. Template management with {{variable}} validation and soft delete
2. Certificate generation (single and bulk) with unique numbers,
   Bikram Sambat issue dates, QR verification codes and PDF documents
3. Public verification by certificate number
4. Revocation (ACTIVE -> REVOKED, permanent)

API Endpoints:
- /certificate-templates - Template CRUD, rendering and statistics
- /certificates/generate, /certificates/bulk-generate - Issue certificates
- /certificates/verify/{certificate_number} - Public verification
- /certificates/{id}/revoke - Revoke a certificate
- /certificates, /certificates/student/{id}, /certificates/stats - Queries

Bulk generation isolates failures per student: one bad record never aborts
the batch, and every issued certificate is committed on its own.
"""

from .router import router, template_router

__all__ = ["router", "template_router"]
