"""Recipe data models — core schema for RecipeBox."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Suggestions shown by recipe forms; category itself is free text
RECIPE_CATEGORIES = (
    "appetizer",
    "main-course",
    "dessert",
    "breakfast",
    "lunch",
    "dinner",
    "snack",
    "beverage",
    "salad",
    "soup",
    "vegetarian",
    "vegan",
    "gluten-free",
)


class Profile(BaseModel):
    id: str
    username: str
    full_name: str
    bio: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=50)
    full_name: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=2000)


class Author(BaseModel):
    """Author display fields attached to recipes and comments."""
    username: str
    full_name: str


class RecipeCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    # A list of lines, or freeform text with one entry per line
    ingredients: Union[list[str], str]
    instructions: Union[list[str], str]
    cooking_time: Optional[int] = Field(None, ge=0, description="Minutes")
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = Field(None, max_length=50)


class RecipeUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    ingredients: Optional[Union[list[str], str]] = None
    instructions: Optional[Union[list[str], str]] = None
    cooking_time: Optional[int] = Field(None, ge=0)
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = Field(None, max_length=50)


class Recipe(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    ingredients: list[str] = []
    instructions: list[str] = []
    cooking_time: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = None
    created_at: datetime
    author: Optional[Author] = None


class RecipeWithStats(Recipe):
    like_count: int = 0
    comment_count: int = 0
    user_has_liked: bool = False
