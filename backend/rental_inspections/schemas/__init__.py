"""Pydantic schemas for the inspection workflow API."""

from rental_inspections.schemas.actor import *
from rental_inspections.schemas.condition import *
from rental_inspections.schemas.dispute import *
from rental_inspections.schemas.inspection import *
