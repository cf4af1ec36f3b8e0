from models.account import Account
from models.composition import Composition
from models.draft import Draft
from models.media import MediaAttachment, Owner, OwnerKind
from models.post import Post, PostStatus, Publication
from models.selection import PlatformSelection, SelectionSet, default_selections
from models.splitting import SplittingConfiguration, SplittingStrategy

__all__ = [
    "Account",
    "Composition",
    "Draft",
    "MediaAttachment",
    "Owner",
    "OwnerKind",
    "PlatformSelection",
    "Post",
    "PostStatus",
    "Publication",
    "SelectionSet",
    "SplittingConfiguration",
    "SplittingStrategy",
    "default_selections",
]
