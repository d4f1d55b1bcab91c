"""Shared fixtures for tests."""

import pytest

from helpers import make_component
from stackbuild.software.models import Project


@pytest.fixture
def chef_server_project() -> Project:
    """Project with the chef-server style graph used across tests."""
    project = Project(
        name="chef-server",
        install_dir="/opt/chef-server",
        build_version="1.0.0",
        dependencies=("preparation", "erchef", "postgresql", "chef"),
    )
    for component in (
        make_component("preparation"),
        make_component("erlang", "R15B03-1", ["openssl", "zlib"]),
        make_component("postgresql", "9.2.8", ["zlib", "openssl"]),
        make_component("skitch", "4.4.1", ["postgresql"]),
        make_component(
            "erchef",
            "4b19a96d57bff9bbf4764d7323b92a0944009b9e",
            ["curl", "erlang", "rsync"],
        ),
        make_component("ruby", "1.9.3-p481", ["zlib", "ncurses"]),
        make_component("chef", "1.0.0", ["bundler", "ohai", "ruby"]),
    ):
        project.library.register(component)
    return project
