# blogapi/crud/blog.py
from sqlmodel import Session, select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from datetime import datetime
import logging

from blogapi.core.errors import (
    BlogValidationError, ConflictError, DependencyMissingError, NotFoundError, PreconditionFailedError,
    translate_storage_error,
)
from blogapi.core.slug import generate_slug
from blogapi.database.engine import transaction
from blogapi.models.blog import Post, Category, Tag, PostCategory, PostTag
from blogapi.schemas.blog import (
    PostCreate, PostUpdate, PostFilters, PostWithCategories,
    CategoryCreate, CategoryUpdate, CategoryTreeNode,
    TagCreate, TagUpdate, TagWithPostCount,
    Category as CategorySchema, Tag as TagSchema,
)

logger = logging.getLogger(__name__)

MAX_CATEGORY_DEPTH = 32

# Non-nullable post columns: an explicit null in an update leaves them untouched
_REQUIRED_POST_FIELDS = ("title", "content", "published", "featured")

_TAG_SORT_COLUMNS = {
    "name": Tag.name,
    "usage_count": Tag.usage_count,
    "created_at": Tag.created_at,
}


def fold_post_rows(rows: Iterable[Tuple[Post, Optional[Category]]]) -> List[PostWithCategories]:
    """
    Fold (post, category) join rows into one record per post.

    Posts keep the order in which they first appear; each post's categories
    keep first-appearance order with repeated category ids dropped. Rows
    whose category is None (posts without categories) add nothing.
    """
    posts: Dict[int, PostWithCategories] = {}
    seen: Dict[int, Set[int]] = {}

    for post, category in rows:
        record = posts.get(post.id)
        if record is None:
            record = PostWithCategories(**post.model_dump())
            posts[post.id] = record
            seen[post.id] = set()

        if category is not None and category.id not in seen[post.id]:
            seen[post.id].add(category.id)
            record.categories.append(CategorySchema.model_validate(category))

    return list(posts.values())


class BlogCRUD:
    # ============ Query helpers ============

    def _post_conditions(self, filters: PostFilters) -> list:
        conditions = []

        if filters.published is not None:
            conditions.append(Post.published == filters.published)

        if filters.search:
            conditions.append(Post.title.icontains(filters.search, autoescape=True))

        if filters.category_id:
            in_category = select(PostCategory.post_id).where(
                PostCategory.category_id == filters.category_id
            )
            conditions.append(Post.id.in_(in_category))

        if filters.author_id:
            conditions.append(Post.author_id == filters.author_id)

        return conditions

    def _load_posts(self, db: Session, post_ids: Sequence[int]) -> List[PostWithCategories]:
        """Load posts with their categories and tags, newest first."""
        if not post_ids:
            return []

        rows = db.exec(
            select(Post, Category)
            .join(PostCategory, PostCategory.post_id == Post.id, isouter=True)
            .join(Category, Category.id == PostCategory.category_id, isouter=True)
            .where(Post.id.in_(post_ids))
            .order_by(Post.created_at.desc(), Post.id.desc(), PostCategory.id)
        ).all()
        posts = fold_post_rows(rows)

        tags_by_post: Dict[int, List[TagSchema]] = {}
        tag_rows = db.exec(
            select(PostTag.post_id, Tag)
            .join(Tag, Tag.id == PostTag.tag_id)
            .where(PostTag.post_id.in_(post_ids))
            .order_by(PostTag.id)
        ).all()
        for post_id, tag in tag_rows:
            tags_by_post.setdefault(post_id, []).append(TagSchema.model_validate(tag))

        for post in posts:
            post.tags = tags_by_post.get(post.id, [])
        return posts

    def _ensure_exist(self, db: Session, model_class, ids: Sequence[int], label: str) -> None:
        if not ids:
            return
        found = set(db.exec(select(model_class.id).where(model_class.id.in_(ids))).all())
        missing = [i for i in ids if i not in found]
        if missing:
            raise DependencyMissingError(
                f"Unknown {label} id(s): {', '.join(str(i) for i in missing)}",
                details={f"{label}_ids": missing}
            )

    def _post_slug(self, db: Session, title: str, exclude_post_id: Optional[int] = None) -> str:
        slug = generate_slug(title)
        if len(slug) < 3:
            raise BlogValidationError(
                "Title must contain at least 3 letters or digits",
                details={"field": "title"}
            )

        query = select(Post.id).where(Post.slug == slug)
        if exclude_post_id is not None:
            query = query.where(Post.id != exclude_post_id)
        if db.exec(query).first() is not None:
            raise ConflictError(
                f"A post with the slug '{slug}' already exists. Try changing the title.",
                details={"slug": slug}
            )
        return slug

    def _replace_category_links(self, db: Session, post_id: int, category_ids: List[int]) -> Set[int]:
        """Swap the post's categories for ``category_ids``; returns the previous ids."""
        existing = db.exec(select(PostCategory).where(PostCategory.post_id == post_id)).all()
        previous = {link.category_id for link in existing}
        for link in existing:
            db.delete(link)
        # Deletes must reach the database before re-inserting a kept pair
        db.flush()

        for category_id in category_ids:
            db.add(PostCategory(post_id=post_id, category_id=category_id))
        db.flush()
        return previous

    def _replace_tag_links(self, db: Session, post_id: int, tag_ids: List[int]) -> Set[int]:
        existing = db.exec(select(PostTag).where(PostTag.post_id == post_id)).all()
        previous = {link.tag_id for link in existing}
        for link in existing:
            db.delete(link)
        db.flush()

        for tag_id in tag_ids:
            db.add(PostTag(post_id=post_id, tag_id=tag_id))
        db.flush()
        return previous

    def _refresh_category_counts(self, db: Session, category_ids: Iterable[int]) -> None:
        for category_id in set(category_ids):
            category = db.get(Category, category_id)
            if category is None:
                continue
            category.post_count = db.exec(
                select(func.count(PostCategory.id)).where(PostCategory.category_id == category_id)
            ).one()
            db.add(category)

    def _refresh_tag_counts(self, db: Session, tag_ids: Iterable[int]) -> None:
        for tag_id in set(tag_ids):
            tag = db.get(Tag, tag_id)
            if tag is None:
                continue
            tag.usage_count = db.exec(
                select(func.count(PostTag.id)).where(PostTag.tag_id == tag_id)
            ).one()
            db.add(tag)

    # ============ Post Operations ============

    def get_posts(self, db: Session, filters: PostFilters) -> List[PostWithCategories]:
        """
        List posts matching ``filters``, newest first.

        The page is cut on distinct post ids before categories are joined,
        so a post linked to many categories still takes a single slot.
        """
        try:
            query = select(Post.id)
            conditions = self._post_conditions(filters)
            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(Post.created_at.desc(), Post.id.desc())
            query = query.offset(filters.offset).limit(filters.limit)

            post_ids = db.exec(query).all()
            return self._load_posts(db, post_ids)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch posts")

    def get_post_model(self, db: Session, post_id: int) -> Post:
        post = db.get(Post, post_id)
        if not post:
            raise NotFoundError("Post not found", details={"id": post_id})
        return post

    def get_post(self, db: Session, post_id: int) -> PostWithCategories:
        """Get post with categories and tags by ID."""
        try:
            posts = self._load_posts(db, [post_id])
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch post")
        if not posts:
            raise NotFoundError("Post not found", details={"id": post_id})
        return posts[0]

    def get_post_by_slug(self, db: Session, slug: str) -> PostWithCategories:
        """Get post with categories and tags by slug."""
        try:
            post_id = db.exec(select(Post.id).where(Post.slug == slug)).first()
            posts = self._load_posts(db, [post_id]) if post_id is not None else []
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch post")
        if not posts:
            raise NotFoundError("Post not found", details={"slug": slug})
        return posts[0]

    def create_post(self, db: Session, post_data: PostCreate, author_id: int) -> PostWithCategories:
        """Create a post and link its categories and tags in one transaction."""
        slug = self._post_slug(db, post_data.title)
        self._ensure_exist(db, Category, post_data.category_ids, "category")
        self._ensure_exist(db, Tag, post_data.tag_ids, "tag")

        post = Post(
            **post_data.model_dump(exclude={'category_ids', 'tag_ids'}),
            slug=slug,
            author_id=author_id
        )
        if post.published:
            post.published_at = datetime.utcnow()

        try:
            with transaction(db):
                db.add(post)
                db.flush()
                post_id = post.id

                for category_id in post_data.category_ids:
                    db.add(PostCategory(post_id=post_id, category_id=category_id))
                for tag_id in post_data.tag_ids:
                    db.add(PostTag(post_id=post_id, tag_id=tag_id))
                db.flush()

                self._refresh_category_counts(db, post_data.category_ids)
                self._refresh_tag_counts(db, post_data.tag_ids)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e,
                "create post",
                conflict_message=f"Failed to create post: a post with the slug '{slug}' already exists. Try changing the title.",
                dependency_message="Failed to create post: related record not found (author, category or tag).",
            )

        logger.info(f"Created post {post_id} ('{slug}') for author {author_id}")
        return self.get_post(db, post_id)

    def update_post(self, db: Session, post_id: int, post_data: PostUpdate) -> PostWithCategories:
        """
        Update post fields and, when given, replace its categories and tags.

        A supplied ``category_ids`` (even empty) replaces every existing link;
        the field update and the link swap commit or roll back together.
        """
        post = self.get_post_model(db, post_id)

        update_data = post_data.model_dump(exclude_unset=True, exclude={'category_ids', 'tag_ids'})
        for field in _REQUIRED_POST_FIELDS:
            if field in update_data and update_data[field] is None:
                del update_data[field]

        # Update slug if title changed
        if 'title' in update_data and update_data['title'] != post.title:
            update_data['slug'] = self._post_slug(db, update_data['title'], exclude_post_id=post_id)

        # Handle publish state change
        if 'published' in update_data:
            if update_data['published'] and not post.published:
                update_data['published_at'] = datetime.utcnow()
            elif not update_data['published']:
                update_data['published_at'] = None

        if post_data.category_ids is not None:
            self._ensure_exist(db, Category, post_data.category_ids, "category")
        if post_data.tag_ids is not None:
            self._ensure_exist(db, Tag, post_data.tag_ids, "tag")

        try:
            with transaction(db):
                for field, value in update_data.items():
                    setattr(post, field, value)
                post.updated_at = datetime.utcnow()
                db.add(post)

                if post_data.category_ids is not None:
                    previous = self._replace_category_links(db, post_id, post_data.category_ids)
                    self._refresh_category_counts(db, previous | set(post_data.category_ids))

                if post_data.tag_ids is not None:
                    previous = self._replace_tag_links(db, post_id, post_data.tag_ids)
                    self._refresh_tag_counts(db, previous | set(post_data.tag_ids))
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e,
                "update post",
                conflict_message="Failed to update post: a post with the same slug already exists.",
                dependency_message="Failed to update post: related record not found (category or tag).",
            )

        logger.info(f"Updated post {post_id}")
        return self.get_post(db, post_id)

    def delete_post(self, db: Session, post_id: int) -> PostWithCategories:
        """Hard-delete a post; its category and tag links cascade. Returns the deleted record."""
        post = self.get_post_model(db, post_id)
        deleted = self.get_post(db, post_id)

        try:
            with transaction(db):
                db.delete(post)
                db.flush()
                self._refresh_category_counts(db, [c.id for c in deleted.categories])
                self._refresh_tag_counts(db, [t.id for t in deleted.tags])
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "delete post")

        logger.info(f"Deleted post {post_id} ('{deleted.slug}')")
        return deleted

    # ============ Category Operations ============

    def _category_slug(self, db: Session, name: str, exclude_id: Optional[int] = None) -> str:
        slug = generate_slug(name)
        if len(slug) < 2:
            raise BlogValidationError(
                "Category name must contain at least 2 letters or digits",
                details={"field": "name"}
            )

        query = select(Category).where((Category.slug == slug) | (Category.name == name))
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if db.exec(query).first() is not None:
            raise ConflictError(
                f"A category with the name '{name}' or slug '{slug}' already exists",
                details={"name": name, "slug": slug}
            )
        return slug

    def _check_parent(self, db: Session, parent_id: int, category_id: Optional[int] = None) -> None:
        """Reject an unknown parent, or one that would make the category its own ancestor."""
        if db.get(Category, parent_id) is None:
            raise DependencyMissingError("Parent category not found", details={"parent_id": parent_id})

        current: Optional[int] = parent_id
        depth = 0
        while current is not None:
            if current == category_id:
                raise BlogValidationError(
                    "A category cannot be its own ancestor",
                    details={"parent_id": parent_id}
                )
            depth += 1
            if depth > MAX_CATEGORY_DEPTH:
                raise BlogValidationError("Category hierarchy is too deep")
            parent = db.get(Category, current)
            current = parent.parent_id if parent else None

    def get_categories(
        self,
        db: Session,
        search: Optional[str] = None,
        parent_id: Optional[int] = None,
        active_only: bool = False
    ) -> List[Category]:
        """Get categories ordered by sort order, then name."""
        query = select(Category)

        if search:
            query = query.where(Category.name.icontains(search, autoescape=True))
        if parent_id is not None:
            query = query.where(Category.parent_id == parent_id)
        if active_only:
            query = query.where(Category.is_active == True)  # noqa: E712

        query = query.order_by(Category.sort_order, Category.name)
        try:
            return list(db.exec(query).all())
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch categories")

    def get_category_tree(self, db: Session, active_only: bool = False) -> List[CategoryTreeNode]:
        """Get categories nested under their parents; roots come back in sort order."""
        categories = self.get_categories(db, active_only=active_only)
        nodes = {c.id: CategoryTreeNode.model_validate(c) for c in categories}

        roots: List[CategoryTreeNode] = []
        for category in categories:
            node = nodes[category.id]
            parent = nodes.get(category.parent_id) if category.parent_id else None
            if parent is not None:
                parent.children.append(node)
            else:
                roots.append(node)
        return roots

    def get_category(self, db: Session, category_id: int) -> Category:
        """Get category by ID."""
        try:
            category = db.get(Category, category_id)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch category")
        if not category:
            raise NotFoundError("Category not found", details={"id": category_id})
        return category

    def get_category_by_slug(self, db: Session, slug: str) -> Category:
        """Get category by slug."""
        try:
            category = db.exec(select(Category).where(Category.slug == slug)).first()
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch category")
        if not category:
            raise NotFoundError("Category not found", details={"slug": slug})
        return category

    def create_category(self, db: Session, category_data: CategoryCreate) -> Category:
        """Create a new category."""
        slug = self._category_slug(db, category_data.name)
        if category_data.parent_id is not None:
            self._check_parent(db, category_data.parent_id)

        category = Category(**category_data.model_dump(), slug=slug)
        try:
            with transaction(db):
                db.add(category)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e,
                "create category",
                conflict_message="A category with this name already exists",
                dependency_message="Parent category not found",
            )

        db.refresh(category)
        logger.info(f"Created category {category.id} ('{slug}')")
        return category

    def update_category(self, db: Session, category_id: int, category_data: CategoryUpdate) -> Category:
        """Update category; the slug follows the name."""
        category = self.get_category(db, category_id)
        update_data = category_data.model_dump(exclude_unset=True)
        for field in ("name", "sort_order", "is_active"):
            if field in update_data and update_data[field] is None:
                del update_data[field]

        # Update slug if name changed
        if 'name' in update_data and update_data['name'] != category.name:
            update_data['slug'] = self._category_slug(db, update_data['name'], exclude_id=category_id)

        if update_data.get('parent_id') is not None:
            self._check_parent(db, update_data['parent_id'], category_id)

        try:
            with transaction(db):
                for field, value in update_data.items():
                    setattr(category, field, value)
                category.updated_at = datetime.utcnow()
                db.add(category)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e,
                "update category",
                conflict_message="A category with this name already exists",
                dependency_message="Parent category not found",
            )

        db.refresh(category)
        return category

    def delete_category(self, db: Session, category_id: int) -> CategorySchema:
        """Delete category; post links cascade and child categories become roots."""
        category = self.get_category(db, category_id)
        deleted = CategorySchema.model_validate(category)

        try:
            with transaction(db):
                db.delete(category)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "delete category")

        logger.info(f"Deleted category {category_id} ('{deleted.slug}')")
        return deleted

    # ============ Tag Operations ============

    def _tag_slug(self, db: Session, name: str, exclude_id: Optional[int] = None) -> str:
        slug = generate_slug(name)
        if len(slug) < 2:
            raise BlogValidationError(
                "Tag name must contain at least 2 letters or digits",
                details={"field": "name"}
            )

        query = select(Tag).where((Tag.slug == slug) | (Tag.name == name))
        if exclude_id is not None:
            query = query.where(Tag.id != exclude_id)
        if db.exec(query).first() is not None:
            raise ConflictError("A tag with this slug already exists", details={"slug": slug})
        return slug

    def get_tags(
        self,
        db: Session,
        search: Optional[str] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        skip: int = 0,
        limit: int = 50
    ) -> List[Tag]:
        """
        Get tags, ordered by ``sort_by`` (name, usage_count or created_at).

        Ties are broken by id so offset pages stay stable.
        """
        column = _TAG_SORT_COLUMNS[sort_by]
        direction = column.desc() if sort_order == "desc" else column.asc()

        query = select(Tag)
        if search:
            query = query.where(Tag.name.icontains(search, autoescape=True))
        query = query.order_by(direction, Tag.id).offset(skip).limit(limit)
        try:
            return list(db.exec(query).all())
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch tags")

    def get_popular_tags(self, db: Session, limit: int = 10) -> List[Tag]:
        """Get the most used tags."""
        query = select(Tag).order_by(Tag.usage_count.desc(), Tag.name).limit(limit)
        try:
            return list(db.exec(query).all())
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch popular tags")

    def get_tag_suggestions(self, db: Session, prefix: str, limit: int = 10) -> List[Tag]:
        """Autocomplete: tags whose name starts with ``prefix``, most used first."""
        query = (
            select(Tag)
            .where(Tag.name.istartswith(prefix, autoescape=True))
            .order_by(Tag.usage_count.desc(), Tag.name)
            .limit(limit)
        )
        try:
            return list(db.exec(query).all())
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch tag suggestions")

    def get_tag(self, db: Session, tag_id: int) -> Tag:
        try:
            tag = db.get(Tag, tag_id)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch tag")
        if not tag:
            raise NotFoundError("Tag not found", details={"id": tag_id})
        return tag

    def get_tag_by_slug(self, db: Session, slug: str, include_post_count: bool = False) -> TagWithPostCount:
        """Get tag by slug; ``include_post_count`` adds the number of published posts using it."""
        try:
            tag = db.exec(select(Tag).where(Tag.slug == slug)).first()
            if not tag:
                raise NotFoundError("Tag not found", details={"slug": slug})

            result = TagWithPostCount.model_validate(tag)
            if include_post_count:
                result.post_count = db.exec(
                    select(func.count(PostTag.id))
                    .join(Post, Post.id == PostTag.post_id)
                    .where(PostTag.tag_id == tag.id, Post.published == True)  # noqa: E712
                ).one()
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "fetch tag")
        return result

    def create_tag(self, db: Session, tag_data: TagCreate) -> Tag:
        """Create a new tag."""
        slug = self._tag_slug(db, tag_data.name)
        tag = Tag(**tag_data.model_dump(), slug=slug)
        try:
            with transaction(db):
                db.add(tag)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e, "create tag", conflict_message="A tag with this slug already exists"
            )

        db.refresh(tag)
        return tag

    def update_tag(self, db: Session, tag_id: int, tag_data: TagUpdate) -> Tag:
        """Update tag."""
        tag = self.get_tag(db, tag_id)
        update_data = tag_data.model_dump(exclude_unset=True)
        if 'name' in update_data and update_data['name'] is None:
            del update_data['name']

        # Update slug if name changed
        if 'name' in update_data and update_data['name'] != tag.name:
            update_data['slug'] = self._tag_slug(db, update_data['name'], exclude_id=tag_id)

        try:
            with transaction(db):
                for field, value in update_data.items():
                    setattr(tag, field, value)
                tag.updated_at = datetime.utcnow()
                db.add(tag)
        except SQLAlchemyError as e:
            raise translate_storage_error(
                e, "update tag", conflict_message="A tag with this name already exists"
            )

        db.refresh(tag)
        return tag

    def delete_tag(self, db: Session, tag_id: int) -> TagSchema:
        """Delete tag (removes all associations with posts)."""
        tag = self.get_tag(db, tag_id)
        deleted = TagSchema.model_validate(tag)
        try:
            with transaction(db):
                db.delete(tag)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "delete tag")
        return deleted

    def bulk_delete_tags(self, db: Session, tag_ids: List[int]) -> int:
        """
        Delete several tags at once; returns how many existed and were removed.

        Raises:
            PreconditionFailedError: Any of the tags is still linked to a post
        """
        try:
            in_use = db.exec(
                select(PostTag.tag_id).where(PostTag.tag_id.in_(tag_ids)).distinct()
            ).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "bulk delete tags")
        if in_use:
            raise PreconditionFailedError(
                "Cannot delete tags that are currently in use by posts",
                details={"tag_ids": sorted(in_use)}
            )

        try:
            with transaction(db):
                tags = db.exec(select(Tag).where(Tag.id.in_(tag_ids))).all()
                for tag in tags:
                    db.delete(tag)
                deleted_count = len(tags)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, "bulk delete tags")

        logger.info(f"Bulk deleted {deleted_count} tag(s)")
        return deleted_count


# Create singleton instance
blog_crud = BlogCRUD()
