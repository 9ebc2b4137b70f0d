'''Create/edit/delete workflow for posts.

The controller keeps no state of its own: each operation receives a
``WorkflowState`` and returns the next one. Listeners registered with
``subscribe`` get a ``Snapshot`` after every operation so the view can
redraw from it.
'''
import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional

from models import Post
from store import PostError, PostNotFound, PostStore

logger : logging.Logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH : int = 3
BODY_MIN_LENGTH : int = 10

CREATED_MESSAGE : str = 'Post created successfully!'
UPDATED_MESSAGE : str = 'Post updated successfully!'
DELETED_MESSAGE : str = 'Post deleted successfully!'

__all__ = [
    'Mode',
    'WorkflowState',
    'Snapshot',
    'PostWorkflow',
    'ValidationError',
    'InvalidTransition',
    'PostError',
    'PostNotFound',
    'validate_post',
]


class ValidationError(PostError):
    '''Aggregated field errors, one list of messages per offending field.'''

    def __init__(self, errors:Mapping[str, list[str]]) -> None:
        self.errors : dict[str, list[str]] = {
            key: list(messages) for key, messages in errors.items()
        }
        super().__init__('; '.join(
            f'{name}: {"; ".join(messages)}' for name, messages in self.errors.items()
        ))


class InvalidTransition(PostError):
    '''Raised when an operation is not allowed from the current mode.'''


class Mode(enum.Enum):
    CREATING = 'creating'
    EDITING = 'editing'


@dataclass(frozen=True)
class WorkflowState:
    mode : Mode = Mode.CREATING
    active_post_id : Optional[int] = None
    draft_title : str = ''
    draft_body : str = ''
    status_message : Optional[str] = None
    errors : Mapping[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.mode is Mode.EDITING and self.active_post_id is None:
            raise ValueError('Editing state requires an active post id.')
        if self.mode is Mode.CREATING and self.active_post_id is not None:
            raise ValueError('Creating state cannot carry an active post id.')

    @property
    def editing(self) -> bool:
        return self.mode is Mode.EDITING

    def to_session(self) -> dict[str, Any]:
        # drafts live in the store or the response, never in the cookie
        return {
            'mode': self.mode.value,
            'active_post_id': self.active_post_id,
        }

    @classmethod
    def from_session(cls, data:Optional[Mapping[str, Any]]) -> 'WorkflowState':
        if not data:
            return cls()
        try:
            mode : Mode = Mode(data.get('mode', Mode.CREATING.value))
            active_post_id : Optional[int] = data.get('active_post_id')
            return cls(
                mode=mode,
                active_post_id=int(active_post_id) if active_post_id is not None else None,
            )
        except (TypeError, ValueError):
            logger.warning('Discarding malformed workflow state: %r', data)
            return cls()


@dataclass(frozen=True)
class Snapshot:
    '''Everything the presentation layer needs for one render.'''

    mode : Mode
    draft_title : str
    draft_body : str
    posts : list[Post]
    status_message : Optional[str] = None
    errors : Mapping[str, list[str]] = field(default_factory=dict)
    active_post_id : Optional[int] = None

    @property
    def editing(self) -> bool:
        return self.mode is Mode.EDITING


Listener = Callable[[Snapshot, WorkflowState], None]


def validate_post(title:Optional[str], body:Optional[str]) -> tuple[str, str]:
    '''Return the cleaned title and body or raise ``ValidationError``.

    Both fields are always checked so every error surfaces at once.
    '''
    title = (title or '').strip()
    body = (body or '').strip()
    errors : dict[str, list[str]] = {}

    if not title:
        errors.setdefault('title', []).append('The title field is required.')
    elif len(title) < TITLE_MIN_LENGTH:
        errors.setdefault('title', []).append(
            f'The title must be at least {TITLE_MIN_LENGTH} characters.'
        )

    if not body:
        errors.setdefault('body', []).append('The body field is required.')
    elif len(body) < BODY_MIN_LENGTH:
        errors.setdefault('body', []).append(
            f'The body must be at least {BODY_MIN_LENGTH} characters.'
        )

    if errors:
        raise ValidationError(errors)
    return title, body


class PostWorkflow:
    def __init__(self, store:Optional[PostStore]=None) -> None:
        self.store : PostStore = store or PostStore()
        self._listeners : list[Listener] = []

    # Observers -----------------------------------------------------------
    def subscribe(self, listener:Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self, state:WorkflowState) -> Snapshot:
        return Snapshot(
            mode=state.mode,
            draft_title=state.draft_title,
            draft_body=state.draft_body,
            posts=self.list(),
            status_message=state.status_message,
            errors=state.errors,
            active_post_id=state.active_post_id,
        )

    def _emit(self, state:WorkflowState) -> WorkflowState:
        if self._listeners:
            snapshot : Snapshot = self.snapshot(state)
            for listener in list(self._listeners):
                listener(snapshot, state)
        return state

    # Operations ----------------------------------------------------------
    def list(self) -> list[Post]:
        return self.store.list_all_newest_first()

    def begin_create(self) -> WorkflowState:
        return self._emit(WorkflowState())

    def submit_create(self, state:WorkflowState, title:Optional[str], body:Optional[str]) -> WorkflowState:
        if state.editing:
            raise InvalidTransition('Cannot create a post while editing one.')
        try:
            title, body = validate_post(title, body)
        except ValidationError as exc:
            logger.debug('Rejected new post: %s', exc)
            return self._emit(replace(
                state,
                draft_title=title or '',
                draft_body=body or '',
                status_message=None,
                errors=exc.errors,
            ))

        self.store.insert(title, body)
        return self._emit(WorkflowState(status_message=CREATED_MESSAGE))

    def begin_edit(self, state:WorkflowState, post_id:int) -> WorkflowState:
        try:
            post : Post = self.store.find_by_id(post_id)
        except PostNotFound:
            logger.warning('Cannot edit missing post %s', post_id)
            raise
        return self._emit(WorkflowState(
            mode=Mode.EDITING,
            active_post_id=post.id,
            draft_title=post.title,
            draft_body=post.body,
        ))

    def resume(self, state:WorkflowState) -> WorkflowState:
        '''Reload the drafts of an edit restored from the session.'''
        if not state.editing:
            return state
        try:
            post : Post = self.store.find_by_id(state.active_post_id)
        except PostNotFound:
            logger.warning('Post %s under edit no longer exists', state.active_post_id)
            raise
        return replace(state, draft_title=post.title, draft_body=post.body)

    def cancel_edit(self, state:WorkflowState) -> WorkflowState:
        if not state.editing:
            raise InvalidTransition('There is no edit to cancel.')
        return self._emit(WorkflowState())

    def submit_update(self, state:WorkflowState, title:Optional[str], body:Optional[str]) -> WorkflowState:
        if not state.editing:
            raise InvalidTransition('No post is being edited.')
        try:
            title, body = validate_post(title, body)
        except ValidationError as exc:
            logger.debug('Rejected update of post %s: %s', state.active_post_id, exc)
            return self._emit(replace(
                state,
                draft_title=title or '',
                draft_body=body or '',
                status_message=None,
                errors=exc.errors,
            ))

        try:
            self.store.update(state.active_post_id, title, body)
        except PostNotFound:
            logger.warning('Post %s vanished while being edited', state.active_post_id)
            raise
        return self._emit(WorkflowState(status_message=UPDATED_MESSAGE))

    def delete_post(self, state:WorkflowState, post_id:int) -> WorkflowState:
        try:
            self.store.delete(post_id)
        except PostNotFound:
            logger.warning('Cannot delete missing post %s', post_id)
            raise
        return self._emit(replace(state, status_message=DELETED_MESSAGE, errors={}))
