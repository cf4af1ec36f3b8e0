"""Thread structure over posts linked by ``thread_parent_id``.

Queries take an arena: a mapping of post id to Post (the store's posts table,
or a dict built from unsaved posts). Parent links are ids, never object
references, and every walk carries a visited set so a dangling or cyclic
chain surfaces as BrokenThreadError.
"""

from errors import BrokenThreadError, ValidationError
from models.post import Post
from models.selection import SelectionSet

THREAD_NOTATION_FORMATS = ("🧵 x/y", "🧵 x of y")


def setup_thread(contents, user_id, selections=None):
    """Build unsaved posts: the first text is the root, the rest are its children."""
    contents = list(contents)
    if not contents:
        raise ValidationError({"thread": ["needs at least one post"]})
    selections = selections if selections is not None else SelectionSet()
    root = Post(user_id=user_id, content=contents[0], selections=selections)
    posts = [root]
    for index, content in enumerate(contents[1:], start=1):
        posts.append(Post(
            user_id=user_id,
            content=content,
            selections=selections,
            thread_parent_id=root.id,
            thread_index=index,
        ))
    return posts


def _children_index(posts):
    index = {}
    for post in posts.values():
        if post.thread_parent_id is not None:
            index.setdefault(post.thread_parent_id, []).append(post)
    for children in index.values():
        children.sort(key=lambda p: (p.thread_index, p.created_at))
    return index


def thread_root(post, posts):
    current = post
    visited = {post.id}
    while current.thread_parent_id is not None:
        parent = posts.get(current.thread_parent_id)
        if parent is None:
            raise BrokenThreadError(
                f"Post {current.id} references missing parent {current.thread_parent_id}"
            )
        if parent.id in visited:
            raise BrokenThreadError(f"Thread parent chain of post {post.id} loops at {parent.id}")
        visited.add(parent.id)
        current = parent
    return current


def thread_children(post, posts):
    return list(_children_index(posts).get(post.id, []))


def thread_posts(root, posts):
    """Root followed by its descendants, depth first in thread_index order."""
    children = _children_index(posts)
    ordered = []
    seen = set()
    stack = [root]
    while stack:
        current = stack.pop()
        if current.id in seen:
            raise BrokenThreadError(f"Thread under {root.id} loops at {current.id}")
        seen.add(current.id)
        ordered.append(current)
        stack.extend(reversed(children.get(current.id, [])))
    return ordered


def thread_size(post, posts):
    return len(thread_posts(thread_root(post, posts), posts))


def is_thread(post, posts):
    if post.thread_parent_id is not None:
        return True
    return any(p.thread_parent_id == post.id for p in posts.values())


def thread_position(post, posts):
    """``"index/size"`` for a post in a thread, ``""`` for a standalone post.

    The root is index 0. A post whose parent chain is broken is shown as the
    root of whatever hangs below it; one caught in a loop gets ``""``.
    """
    try:
        root = thread_root(post, posts)
        size = len(thread_posts(root, posts))
    except BrokenThreadError:
        root = post
        try:
            size = len(thread_posts(root, posts))
        except BrokenThreadError:
            return ""
    if size == 1:
        return ""
    index = 0 if post is root else post.thread_index
    return f"{index}/{size}"


def check_thread_placement(post, posts):
    """Reject a child whose parent is unknown or whose index is taken by a sibling."""
    if post.thread_parent_id is None:
        return
    if post.thread_parent_id not in posts:
        raise BrokenThreadError(f"Thread parent {post.thread_parent_id} does not exist")
    for sibling in posts.values():
        if (
            sibling.id != post.id
            and sibling.thread_parent_id == post.thread_parent_id
            and sibling.thread_index == post.thread_index
        ):
            raise ValidationError(
                {"thread_index": [f"{post.thread_index} is already used in this thread"]}
            )


def format_thread_notation(fmt, index, total):
    """Render a notation such as ``"🧵 x of y"`` for the 1-based index."""
    return fmt.replace("x", str(index), 1).replace("y", str(total), 1)


def apply_thread_notation(contents, fmt):
    total = len(contents)
    if total < 2:
        return list(contents)
    return [
        f"{content.rstrip()}\n\n{format_thread_notation(fmt, i, total)}"
        for i, content in enumerate(contents, start=1)
    ]
