from dataclasses import dataclass

import config
from errors import ValidationError
from models.draft import Draft
from models.post import Post
from models.selection import default_selections
from services.threads import THREAD_NOTATION_FORMATS, apply_thread_notation, setup_thread
from services.validation import can_submit, character_stats

# Thread drafts are stored as one text with posts separated by this marker
THREAD_SEPARATOR = "\n\n---\n\n"


@dataclass
class ThreadPost:
    content: str
    order: int
    is_active: bool = False


class ComposerState:
    """Form state of the post composer.

    Character stats and the submit gate are recomputed from the current content
    and selections on every read, never cached.
    """

    def __init__(self, registry, content="", selections=None, media=None):
        self.registry = registry
        self.content = content
        self.selections = selections if selections is not None else default_selections(registry)
        self.media = list(media or [])
        self.thread_posts = []
        self.active_thread_index = 0
        self.use_thread_notation = False
        self.thread_notation_format = THREAD_NOTATION_FORMATS[1]

    # --- content and platforms ---

    def update_content(self, content):
        if self.is_thread_mode:
            self.thread_posts[self.active_thread_index].content = content
        self.content = content

    def toggle_platform(self, platform_id):
        if platform_id not in self.registry:
            raise ValidationError({"selections": [f"unknown platform {platform_id}"]})
        self.selections = self.selections.toggled(platform_id)

    def toggle_account(self, platform_id, account_id):
        self.selections = self.selections.toggled_account(platform_id, account_id)

    # --- media ---

    def add_media(self, attachment):
        if len(self.media) >= config.MAX_IMAGES:
            raise ValidationError({"media": [f"at most {config.MAX_IMAGES} files can be attached"]})
        attachment.validate()
        self.media.append(attachment)

    def remove_media(self, media_id):
        self.media = [m for m in self.media if m.id != media_id]

    # --- thread mode ---

    @property
    def is_thread_mode(self):
        return bool(self.thread_posts)

    def enter_thread_mode(self, contents=None):
        """Start editing a thread, seeded with contents or the current text."""
        contents = list(contents) if contents else [self.content]
        self.thread_posts = [ThreadPost(content=c, order=i) for i, c in enumerate(contents)]
        self.switch_thread_post(0)

    def exit_thread_mode(self):
        if self.is_thread_mode:
            self.content = self.thread_posts[0].content
        self.thread_posts = []
        self.active_thread_index = 0

    def add_thread_post(self, content=""):
        if not self.is_thread_mode:
            self.enter_thread_mode()
        self.thread_posts.append(ThreadPost(content=content, order=len(self.thread_posts)))
        self.switch_thread_post(len(self.thread_posts) - 1)

    def remove_thread_post(self, index):
        if not 0 <= index < len(self.thread_posts):
            raise IndexError(f"No thread post at {index}")
        if len(self.thread_posts) == 1:
            raise ValidationError({"thread": ["a thread needs at least one post"]})
        del self.thread_posts[index]
        for order, post in enumerate(self.thread_posts):
            post.order = order
        self.switch_thread_post(min(self.active_thread_index, len(self.thread_posts) - 1))

    def switch_thread_post(self, index):
        if not 0 <= index < len(self.thread_posts):
            raise IndexError(f"No thread post at {index}")
        for i, post in enumerate(self.thread_posts):
            post.is_active = i == index
        self.active_thread_index = index
        self.content = self.thread_posts[index].content

    # --- derived ---

    def contents(self):
        """Texts that would be published, notation included."""
        if not self.is_thread_mode:
            return [self.content]
        texts = [post.content for post in self.thread_posts]
        if self.use_thread_notation:
            texts = apply_thread_notation(texts, self.thread_notation_format)
        return texts

    @property
    def active_content(self):
        texts = self.contents()
        return texts[self.active_thread_index] if self.is_thread_mode else texts[0]

    @property
    def character_stats(self):
        return character_stats(self.active_content, self.selections, self.registry)

    @property
    def can_submit(self):
        return all(can_submit(text, self.selections, self.registry) for text in self.contents())

    # --- builders ---

    def to_draft(self, user_id):
        if self.is_thread_mode:
            text = THREAD_SEPARATOR.join(post.content for post in self.thread_posts)
        else:
            text = self.content
        return Draft(
            user_id=user_id,
            content=text,
            selections=self.selections,
            media=list(self.media),
            is_thread=self.is_thread_mode,
        )

    def to_posts(self, user_id):
        if self.is_thread_mode:
            posts = setup_thread(self.contents(), user_id, self.selections)
        else:
            posts = [Post(user_id=user_id, content=self.content, selections=self.selections)]
        posts[0].media = list(self.media)
        return posts

    def load_draft(self, draft):
        self.reset()
        self.content = draft.content
        self.selections = draft.selections
        # The draft keeps its own attachments
        self.media = [attachment.copy_for(None) for attachment in draft.media]
        if draft.is_thread:
            self.enter_thread_mode(draft.content.split(THREAD_SEPARATOR))

    def reset(self):
        self.content = ""
        self.selections = default_selections(self.registry)
        self.media = []
        self.thread_posts = []
        self.active_thread_index = 0
