"""Tenant resolution for API requests.

Authentication lives outside this service; an upstream gateway forwards the
resolved company in the X-Company-Id header.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from foodcost.core.metrics import DataQualityMetrics


def get_current_company(x_company_id: Optional[str] = Header(None, alias="X-Company-Id")) -> int:
    """Company id of the caller from the X-Company-Id header."""
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Company-Id header",
        )
    try:
        company_id = int(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-Id must be an integer",
        )
    if company_id < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-Id must be positive",
        )
    return company_id


def get_metrics(request: Request) -> DataQualityMetrics:
    return request.app.state.metrics


CurrentCompany = Annotated[int, Depends(get_current_company)]
Metrics = Annotated[DataQualityMetrics, Depends(get_metrics)]
