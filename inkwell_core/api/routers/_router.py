"""
Inkwell shared router collecting all path operations of the API
"""

from fastapi import APIRouter


router = APIRouter()
