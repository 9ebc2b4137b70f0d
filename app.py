import os, secrets, logging
from flask import Flask, Blueprint, render_template, session, redirect, request, url_for, flash, current_app
from models import db
from store import PostNotFound
from workflow import PostWorkflow, WorkflowState, Snapshot, InvalidTransition
from typing import Union, Optional, Any, Mapping
from dotenv import load_dotenv
import click
from flask.cli import with_appcontext

STATE_KEY : str = 'post_workflow'

bp : Blueprint = Blueprint('posts', __name__)


def load_state() -> WorkflowState:
    return WorkflowState.from_session(session.get(STATE_KEY))


def remember_state(snapshot:Snapshot, state:WorkflowState) -> None:
    '''Persist the transient state and hand the one-shot status to flash().'''
    session[STATE_KEY] = state.to_session()
    if snapshot.status_message:
        flash(snapshot.status_message, 'success')


def get_workflow() -> PostWorkflow:
    workflow : PostWorkflow = PostWorkflow()
    workflow.subscribe(remember_state)
    return workflow


def render_page(snapshot:Snapshot, status:int=200) -> Union[str, Any]:
    return render_template('posts.html', view=snapshot), status


def respond(workflow:PostWorkflow, state:WorkflowState) -> Union[str, Any]:
    if state.errors:
        return render_page(workflow.snapshot(state), 422)
    return redirect(url_for('posts.index'))


@bp.route('/')
def index() -> Union[str, Any]:
    workflow : PostWorkflow = get_workflow()
    try:
        state : WorkflowState = workflow.resume(load_state())
    except PostNotFound:
        state = workflow.begin_create()
        flash('Post not found.', 'danger')
    return render_page(workflow.snapshot(state))


@bp.route('/posts', methods=['POST'])
def store_post() -> Union[str, Any]:
    workflow : PostWorkflow = get_workflow()
    state : WorkflowState = workflow.submit_create(
        load_state(), request.form.get('title'), request.form.get('body')
    )
    return respond(workflow, state)


@bp.route('/posts/<int:post_id>/edit', methods=['POST'])
def edit_post(post_id:int) -> Union[str, Any]:
    get_workflow().begin_edit(load_state(), post_id)
    return redirect(url_for('posts.index'))


@bp.route('/posts/cancel', methods=['POST'])
def cancel_edit() -> Union[str, Any]:
    get_workflow().cancel_edit(load_state())
    return redirect(url_for('posts.index'))


@bp.route('/posts/update', methods=['POST'])
def update_post() -> Union[str, Any]:
    workflow : PostWorkflow = get_workflow()
    current : WorkflowState = load_state()
    try:
        state : WorkflowState = workflow.submit_update(
            current, request.form.get('title'), request.form.get('body')
        )
    except PostNotFound as exc:
        # removed from another session; the stale edit is dropped
        current_app.logger.warning('Post %s was deleted during edit', exc.post_id)
        workflow.begin_create()
        flash('Post not found.', 'danger')
        return redirect(url_for('posts.index'))
    return respond(workflow, state)


@bp.route('/posts/<int:post_id>/delete', methods=['POST'])
def delete_post(post_id:int) -> Union[str, Any]:
    try:
        get_workflow().delete_post(load_state(), post_id)
    except PostNotFound:
        flash('Post not found.', 'danger')
    return redirect(url_for('posts.index'))


@bp.app_errorhandler(404)
def not_found(_error) -> Union[str, Any]:
    return render_template('404.html'), 404


@bp.app_errorhandler(PostNotFound)
def post_not_found(error:PostNotFound) -> Union[str, Any]:
    current_app.logger.warning('%s', error)
    return render_template('404.html'), 404


@bp.app_errorhandler(InvalidTransition)
def invalid_transition(error:InvalidTransition) -> Union[str, Any]:
    current_app.logger.warning('Rejected action: %s', error)
    flash(str(error), 'warning')
    return redirect(url_for('posts.index'))


@click.command('init-db')
@with_appcontext
def init_db_command() -> None:
    '''Create the posts table.'''
    db.create_all()
    click.echo('Initialized the database.')


def create_app(config:Optional[Mapping[str, Any]]=None) -> Flask:
    load_dotenv()
    app : Flask = Flask(__name__)
    app.secret_key = os.getenv('SECRET_KEY') or secrets.token_hex(16)
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///data.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO').upper()
    if config:
        app.config.update(config)

    logging.basicConfig(level=app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    app.register_blueprint(bp)
    app.cli.add_command(init_db_command)

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app : Flask = create_app()
    port : int = int(os.getenv('PORT', '5000'))
    app.logger.info('Post manager running on port %s', port)
    app.run(host='0.0.0.0', port=port)
