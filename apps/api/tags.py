from typing import ClassVar

from flask import current_app as app
from flask import request
from flask_restful import Resource

from apps.common import failure_message, require_login, success
from apps.common import cache as proposal_cache
from apps.common.forms import TagForm, validate_or_raise
from main import db
from models.tag import Tag

from . import api
from .payloads import tag_payload


class TagList(Resource):
    method_decorators: ClassVar = [require_login]

    @failure_message("Failed to retrieve tags")
    def get(self):
        search = (request.args.get("search") or "").strip() or None
        tags = proposal_cache.remember_tags(
            lambda: [tag_payload(t) for t in Tag.search(search)],
            search,
        )
        return success("Tags retrieved successfully", {"tags": tags})

    @failure_message("Failed to create tag")
    def post(self):
        form = validate_or_raise(TagForm())
        name = form.name.data

        existing = Tag.get_by_name(name)
        tag = existing or Tag.get_or_create(name)
        db.session.commit()

        if existing is None:
            app.logger.info("Created tag %s (%s)", tag.id, tag.name)
            proposal_cache.forget_tags()
        return success("Tag created successfully", {"tag": tag_payload(tag)}, 201)


api.add_resource(TagList, "/tags", endpoint="tags")
