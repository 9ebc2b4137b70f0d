'''Post persistence on top of the Flask-SQLAlchemy session.'''
import logging
from typing import Optional

from models import db, Post

logger : logging.Logger = logging.getLogger(__name__)


class PostError(Exception):
    '''Base class for post workflow failures.'''


class PostNotFound(PostError):
    def __init__(self, post_id:int) -> None:
        self.post_id : int = post_id
        super().__init__(f'Post {post_id} does not exist.')


class PostStore:
    '''Create, read, update and delete posts by id.

    Every mutating call commits on its own, so each write is atomic but
    nothing locks across calls: concurrent updates are last-write-wins.
    '''

    def insert(self, title:str, body:str) -> Post:
        post : Post = Post(title=title, body=body)
        db.session.add(post)
        db.session.commit()
        logger.info('Inserted post %s', post.id)
        return post

    def find_by_id(self, post_id:int) -> Post:
        post : Optional[Post] = db.session.get(Post, post_id)
        if post is None:
            raise PostNotFound(post_id)
        return post

    def update(self, post_id:int, title:str, body:str) -> Post:
        post : Post = self.find_by_id(post_id)
        post.title = title
        post.body = body
        db.session.commit()
        logger.info('Updated post %s', post_id)
        return post

    def delete(self, post_id:int) -> None:
        post : Post = self.find_by_id(post_id)
        db.session.delete(post)
        db.session.commit()
        logger.info('Deleted post %s', post_id)

    def list_all_newest_first(self) -> list[Post]:
        return list(db.session.scalars(
            db.select(Post).order_by(Post.created_at.desc(), Post.id.desc())
        ))

    def count(self) -> int:
        return db.session.scalar(db.select(db.func.count(Post.id))) or 0
