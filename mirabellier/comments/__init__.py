"""Comment trees and like sets shared by posts, videos and pictures.

Note: both modules are pure; repositories pass in the stored JSON columns and
write the results back themselves.
"""

from .likes import (
    LikeAction,
    deserialize_likes,
    flip_like,
    normalize_likes,
    serialize_likes,
    toggle_like,
)
from .tree import (
    CommentNode,
    StoredComment,
    build_comment_tree,
    deserialize_comments,
    serialize_comments,
)


__all__ = [
    "CommentNode",
    "LikeAction",
    "StoredComment",
    "build_comment_tree",
    "deserialize_comments",
    "deserialize_likes",
    "flip_like",
    "normalize_likes",
    "serialize_comments",
    "serialize_likes",
    "toggle_like",
]
