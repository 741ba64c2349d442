"""
Inkwell router module for /tags requests
"""

from typing import List, Optional

from fastapi import Depends

from ._router import router
from ..dependency import MinimalRequestData
from .. import versioning
from ...persistence import models
from ... import schemas


@router.get("/tags", tags=["Tags"], response_model=List[schemas.Tag])
@versioning.versions(minimal=1)
async def get_all_tags(
        used: Optional[bool] = None,
        local: MinimalRequestData = Depends(MinimalRequestData)
):
    """
    Return all known tags ordered by their name, together with the number of tagged articles

    Use `used=true` to only show tags of at least one article
    and `used=false` to only show the orphaned tags instead.
    """

    tags = local.session.query(models.Tag).order_by(models.Tag.name).all()
    if used is not None:
        tags = [tag for tag in tags if bool(tag.articles) == used]
    return [tag.schema for tag in tags]
