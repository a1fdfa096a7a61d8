from recipebox.models.recipe import (  # noqa: F401
    Author,
    Difficulty,
    Profile,
    ProfileUpdate,
    RECIPE_CATEGORIES,
    Recipe,
    RecipeCreate,
    RecipeUpdate,
    RecipeWithStats,
)
from recipebox.models.social import (  # noqa: F401
    Comment,
    CommentCreate,
    CommentStats,
    CommentUpdate,
    CommentsResult,
    LikeToggleResponse,
    RecipeStats,
)
