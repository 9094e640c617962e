"""Unit tests for the permission evaluator and AuthContext."""

from dataclasses import dataclass
from itertools import combinations

import pytest

from sightings.kernel.identity import AuthContext
from sightings.kernel.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    can_create,
    can_delete,
    can_edit,
    can_publish,
    can_read,
    has_permission,
    parse_roles,
    permissions_for,
)


@dataclass
class Entity:
    owner: str
    published: bool = False


ALL_ROLE_SETS = [
    frozenset(combo)
    for size in range(len(Role) + 1)
    for combo in combinations(list(Role), size)
]


class TestPermissionsFor:
    """Tests for the role -> permission table."""
    
    def test_empty_role_set_grants_nothing(self):
        assert permissions_for([]) == frozenset()
    
    def test_union_of_role_permissions(self):
        granted = permissions_for([Role.PUBLIC, Role.MODERATOR])
        assert granted == {
            Permission.READ_PUBLISHED,
            Permission.READ_ALL,
            Permission.PUBLISH_ALL,
            Permission.DELETE_ALL,
        }
    
    def test_no_role_grants_edit_of_others(self):
        """There is no edit-all capability at all."""
        for perms in ROLE_PERMISSIONS.values():
            assert all(p.value != "edit-all" for p in perms)
    
    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_PERMISSIONS[Role.PUBLIC] = frozenset({Permission.READ_ALL})  # type: ignore[index]
    
    def test_has_permission(self):
        assert has_permission([Role.SECURITY_ADMIN], Permission.MANAGE_ROLES)
        assert not has_permission([Role.MODERATOR], Permission.MANAGE_ROLES)
    
    def test_parse_roles_ignores_unknown_values(self):
        assert parse_roles(["moderator", "superuser", "public"]) == {Role.MODERATOR, Role.PUBLIC}


class TestCanRead:
    
    def test_public_reads_published(self):
        assert can_read([Role.PUBLIC], Entity("u", published=True), None)
    
    def test_public_cannot_read_unpublished(self):
        assert not can_read([Role.PUBLIC], Entity("u"), None)
    
    def test_owner_reads_own_draft(self):
        roles = [Role.PUBLIC, Role.AUTHENTICATED_USER]
        assert can_read(roles, Entity("u"), "u")
        assert not can_read(roles, Entity("u"), "v")
    
    def test_read_all_reads_anything(self):
        assert can_read([Role.MODERATOR], Entity("u"), "m")
    
    @pytest.mark.parametrize("roles", ALL_ROLE_SETS)
    def test_anonymous_never_reads_unpublished_without_read_all(self, roles):
        """Without a user id, only read-all can reveal unpublished content."""
        expected = Permission.READ_ALL in permissions_for(roles)
        assert can_read(roles, Entity("u", published=False), None) is expected


class TestCanEdit:
    
    def test_owner_with_edit_own(self):
        assert can_edit([Role.AUTHENTICATED_USER], Entity("u"), "u")
    
    def test_non_owner_cannot_edit(self):
        assert not can_edit([Role.AUTHENTICATED_USER], Entity("u"), "v")
    
    def test_moderator_cannot_edit_others(self):
        roles = [Role.PUBLIC, Role.AUTHENTICATED_USER, Role.MODERATOR]
        assert not can_edit(roles, Entity("u"), "m")
    
    def test_requires_user_id(self):
        assert not can_edit([Role.AUTHENTICATED_USER], Entity(""), None)


class TestCanDeleteAndPublish:
    
    def test_delete_own(self):
        assert can_delete([Role.AUTHENTICATED_USER], Entity("u"), "u")
        assert not can_delete([Role.AUTHENTICATED_USER], Entity("u"), "v")
    
    def test_delete_all(self):
        assert can_delete([Role.MODERATOR], Entity("u"), "m")
    
    def test_publish_own_needs_validated_user(self):
        assert not can_publish([Role.AUTHENTICATED_USER], Entity("u"), "u")
        assert can_publish([Role.AUTHENTICATED_USER, Role.VALIDATED_USER], Entity("u"), "u")
        assert not can_publish([Role.VALIDATED_USER], Entity("u"), "v")
    
    def test_publish_all(self):
        assert can_publish([Role.MODERATOR], Entity("u"), "m")
    
    def test_create_needs_identity_and_edit_own(self):
        assert can_create([Role.AUTHENTICATED_USER], "u")
        assert not can_create([Role.AUTHENTICATED_USER], None)
        assert not can_create([Role.PUBLIC], "u")


class TestAuthContext:
    
    def test_anonymous_has_only_public(self):
        context = AuthContext.anonymous()
        assert context.roles == {Role.PUBLIC}
        assert not context.is_authenticated
    
    def test_authenticated_user_added_with_identity(self):
        context = AuthContext.for_user("u", [Role.MODERATOR])
        assert context.roles == {Role.PUBLIC, Role.AUTHENTICATED_USER, Role.MODERATOR}
    
    def test_authenticated_user_dropped_without_identity(self):
        context = AuthContext.for_user(None, [Role.AUTHENTICATED_USER, Role.MODERATOR])
        assert Role.AUTHENTICATED_USER not in context.roles
        assert context.user_id is None
    
    def test_empty_user_id_is_anonymous(self):
        assert AuthContext.for_user("").user_id is None
    
    def test_predicates_delegate_to_evaluator(self):
        context = AuthContext.for_user("u")
        mine = Entity("u")
        theirs = Entity("v", published=True)
        assert context.can_read(mine) and context.can_edit(mine) and context.can_delete(mine)
        assert context.can_read(theirs)
        assert not context.can_edit(theirs)
        assert not context.can_publish(mine)
        assert context.can_create()
