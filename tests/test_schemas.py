import pytest
from pydantic import ValidationError

from blogapi.schemas.user import UserUpdate
from blogapi.schemas.blog import (
    PostCreate, PostUpdate, PostFilters,
    CategoryCreate, CategoryUpdate,
    TagCreate, TagUpdate, TagBulkDelete,
)


class TestPostCreate:
    def test_post_create_valid(self):
        post = PostCreate(title="My First Post", content="Some content here")
        assert post.title == "My First Post"
        assert post.published is False  # default value
        assert post.featured is False
        assert post.category_ids == []
        assert post.tag_ids == []

    def test_post_create_title_too_short(self):
        with pytest.raises(ValidationError):
            PostCreate(title="Hey", content="Some content")

    def test_post_create_title_too_long(self):
        with pytest.raises(ValidationError):
            PostCreate(title="T" * 201, content="Some content")

    def test_post_create_blank_title(self):
        with pytest.raises(ValidationError) as exc_info:
            PostCreate(title="       ", content="Some content")
        assert "Title cannot be empty" in str(exc_info.value)

    def test_post_create_empty_content(self):
        with pytest.raises(ValidationError):
            PostCreate(title="Valid title", content="")

    def test_post_create_blank_content(self):
        with pytest.raises(ValidationError) as exc_info:
            PostCreate(title="Valid title", content="   ")
        assert "Content cannot be empty" in str(exc_info.value)

    def test_post_create_rejects_non_positive_ids(self):
        with pytest.raises(ValidationError):
            PostCreate(title="Valid title", content="Body", category_ids=[1, 0])

    def test_post_create_collapses_duplicate_ids(self):
        post = PostCreate(title="Valid title", content="Body", category_ids=[3, 1, 3, 2, 1])
        assert post.category_ids == [3, 1, 2]


class TestPostUpdate:
    def test_post_update_empty_is_valid(self):
        update = PostUpdate()
        assert update.model_dump(exclude_unset=True) == {}

    def test_post_update_partial(self):
        update = PostUpdate(published=True)
        assert update.model_dump(exclude_unset=True) == {"published": True}
        assert update.category_ids is None

    def test_post_update_empty_category_list_is_kept(self):
        update = PostUpdate(category_ids=[])
        assert update.category_ids == []

    def test_post_update_blank_title(self):
        with pytest.raises(ValidationError):
            PostUpdate(title="        ")


class TestPostFilters:
    def test_defaults(self):
        filters = PostFilters()
        assert filters.limit == 10
        assert filters.offset == 0
        assert filters.search is None
        assert filters.published is None

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            PostFilters(limit=limit)

    def test_limit_edges_are_accepted(self):
        assert PostFilters(limit=1).limit == 1
        assert PostFilters(limit=100).limit == 100

    def test_negative_offset(self):
        with pytest.raises(ValidationError):
            PostFilters(offset=-1)

    def test_category_id_must_be_positive(self):
        with pytest.raises(ValidationError):
            PostFilters(category_id=0)


class TestCategorySchemas:
    def test_category_create_valid(self):
        category = CategoryCreate(name="Tech & Science", description="All things nerdy")
        assert category.name == "Tech & Science"
        assert category.parent_id is None
        assert category.sort_order == 0
        assert category.is_active is True

    def test_category_create_name_too_short(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="A")

    def test_category_create_description_too_long(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="Tech", description="x" * 501)

    def test_category_create_invalid_color(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="Tech", color="red")

    def test_category_create_valid_color(self):
        assert CategoryCreate(name="Tech", color="#4CAF50").color == "#4CAF50"

    def test_category_update_partial(self):
        update = CategoryUpdate(description="New description")
        assert update.model_dump(exclude_unset=True) == {"description": "New description"}


class TestTagSchemas:
    def test_tag_create_strips_name(self):
        tag = TagCreate(name="  python  ")
        assert tag.name == "python"

    def test_tag_create_name_too_short(self):
        with pytest.raises(ValidationError):
            TagCreate(name="p")

    def test_tag_update_requires_a_field(self):
        with pytest.raises(ValidationError) as exc_info:
            TagUpdate()
        assert "At least one field must be provided" in str(exc_info.value)

    def test_tag_update_single_field(self):
        assert TagUpdate(color="#000000").color == "#000000"


class TestCategoryNameWhitespace:
    def test_category_create_strips_name(self):
        assert CategoryCreate(name="  Tech & Science ").name == "Tech & Science"

    def test_category_update_strips_name(self):
        assert CategoryUpdate(name=" Travel  ").name == "Travel"
        assert CategoryUpdate(description="x").name is None


class TestTagBulkDelete:
    def test_ids_are_deduplicated(self):
        assert TagBulkDelete(ids=[3, 1, 3]).ids == [3, 1]

    @pytest.mark.parametrize("ids", [[], list(range(1, 52)), [0], [-4]])
    def test_invalid_id_lists(self, ids):
        with pytest.raises(ValidationError):
            TagBulkDelete(ids=ids)


class TestUserUpdate:
    def test_requires_a_field(self):
        with pytest.raises(ValidationError):
            UserUpdate()

    def test_partial(self):
        update = UserUpdate(bio="Hello")
        assert update.model_dump(exclude_unset=True) == {"bio": "Hello"}

    def test_invalid_username(self):
        with pytest.raises(ValidationError):
            UserUpdate(username="no spaces")
