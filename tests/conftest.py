"""Shared plan fixtures for tfops tests."""

import copy
import json
from pathlib import Path

import pytest

from tfops.parser import PlanLoader

AWS = "registry.terraform.io/hashicorp/aws"


def resource_change(address, actions, module_address="", mode="managed", before=None, after=None, **extra):
    """Build one ``resource_changes`` entry."""
    segments = address.split(".")
    type_, name = segments[-2], segments[-1].split("[")[0]
    entry = {
        "address": address,
        "mode": mode,
        "type": type_,
        "name": name,
        "provider_name": AWS,
        "change": {
            "actions": actions,
            "before": before,
            "after": after,
        },
    }
    if module_address:
        entry["module_address"] = module_address
    entry["change"].update(extra)
    return entry


# Three resources across two modules:
#   aws_instance.web -> aws_security_group.web
#   module.database.aws_instance.db -> aws_instance.web (through a module variable)
SCENARIO_PLAN = {
    "format_version": "1.2",
    "terraform_version": "1.6.0",
    "resource_changes": [
        resource_change("aws_security_group.web", ["create"], after={"name": "web-sg"}),
        resource_change("aws_instance.web", ["create"], after={"ami": "ami-123"}),
        resource_change(
            "module.database.aws_instance.db", ["create"],
            module_address="module.database", after={"ami": "ami-456"},
        ),
    ],
    "configuration": {
        "root_module": {
            "resources": [
                {
                    "address": "aws_security_group.web",
                    "mode": "managed",
                    "type": "aws_security_group",
                    "name": "web",
                    "expressions": {"name": {"constant_value": "web-sg"}},
                },
                {
                    "address": "aws_instance.web",
                    "mode": "managed",
                    "type": "aws_instance",
                    "name": "web",
                    "expressions": {
                        "ami": {"constant_value": "ami-123"},
                        "vpc_security_group_ids": {
                            "references": ["aws_security_group.web.id", "aws_security_group.web"]
                        },
                    },
                },
            ],
            "module_calls": {
                "database": {
                    "source": "./modules/database",
                    "expressions": {
                        "app_instance_id": {"references": ["aws_instance.web.id", "aws_instance.web"]}
                    },
                    "module": {
                        "resources": [
                            {
                                "address": "aws_instance.db",
                                "mode": "managed",
                                "type": "aws_instance",
                                "name": "db",
                                "expressions": {
                                    "ami": {"constant_value": "ami-456"},
                                    "user_data": {"references": ["var.app_instance_id"]},
                                },
                            }
                        ],
                        "variables": {"app_instance_id": {"description": "Instance to back up"}},
                    },
                }
            },
        }
    },
}


# The same three resources, wired only through depends_on on the change records
EXPLICIT_SCENARIO_PLAN = {
    "format_version": "1.2",
    "terraform_version": "1.6.0",
    "resource_changes": [
        resource_change("aws_security_group.web", ["create"], after={"name": "web-sg"}),
        {
            **resource_change("aws_instance.web", ["create"], after={"ami": "ami-123"}),
            "depends_on": ["aws_security_group.web"],
        },
        {
            **resource_change(
                "module.database.aws_instance.db", ["create"],
                module_address="module.database", after={"ami": "ami-456"},
            ),
            "depends_on": ["aws_instance.web"],
        },
    ],
}


# Data source, outputs, variables, a local, a nested module chain and every action
FULL_PLAN = {
    "format_version": "1.2",
    "terraform_version": "1.6.0",
    "applicable": True,
    "complete": True,
    "errored": False,
    "variables": {
        "region": {"value": "us-east-1"},
        "db_password": {"value": "hunter2"},
    },
    "resource_changes": [
        resource_change("data.aws_ami.ubuntu", ["read"], mode="data", after={"id": "ami-2"}),
        resource_change(
            "aws_instance.app", ["update"],
            before={"ami": "ami-1", "instance_type": "t3.micro", "tags": {"team": "core"}},
            after={"ami": "ami-2", "instance_type": "t3.small", "tags": {"team": "core"}},
        ),
        resource_change(
            "aws_db_instance.main", ["delete", "create"],
            before={"engine": "postgres", "password": "old"},
            after={"engine": "postgres", "password": "new"},
            before_sensitive={"password": True},
            after_sensitive={"password": True},
        ),
        resource_change(
            "module.app.module.db.aws_s3_bucket.logs", ["create"],
            module_address="module.app.module.db", after={"bucket": "logs"},
        ),
        resource_change("aws_s3_bucket.old", ["delete"], before={"bucket": "old"}),
    ],
    "output_changes": {
        "instance_ip": {"actions": ["create"], "after": "10.0.0.1", "after_sensitive": False},
        "db_password": {"actions": ["create"], "after": "new", "after_sensitive": True},
    },
    "configuration": {
        "root_module": {
            "variables": {
                "region": {"default": "us-east-1"},
                "db_password": {"sensitive": True},
            },
            "locals": {
                "name_prefix": {"expression": {"references": ["var.region"]}},
            },
            "outputs": {
                "instance_ip": {
                    "expression": {"references": ["aws_instance.app.private_ip", "aws_instance.app"]}
                },
                "db_password": {
                    "sensitive": True,
                    "expression": {"references": ["aws_db_instance.main.password", "aws_db_instance.main"]},
                },
            },
            "resources": [
                {
                    "address": "data.aws_ami.ubuntu",
                    "mode": "data",
                    "type": "aws_ami",
                    "name": "ubuntu",
                    "expressions": {"owners": {"constant_value": ["099720109477"]}},
                },
                {
                    "address": "aws_instance.app",
                    "mode": "managed",
                    "type": "aws_instance",
                    "name": "app",
                    "expressions": {
                        "ami": {"references": ["data.aws_ami.ubuntu.id", "data.aws_ami.ubuntu"]},
                        "tags": {"references": ["local.name_prefix"]},
                    },
                },
                {
                    "address": "aws_db_instance.main",
                    "mode": "managed",
                    "type": "aws_db_instance",
                    "name": "main",
                    "expressions": {"password": {"references": ["var.db_password"]}},
                    "depends_on": ["aws_instance.app"],
                },
                {
                    "address": "aws_s3_bucket.old",
                    "mode": "managed",
                    "type": "aws_s3_bucket",
                    "name": "old",
                    "expressions": {"bucket": {"constant_value": "old"}},
                },
            ],
            "module_calls": {
                "app": {
                    "source": "./modules/app",
                    "expressions": {"bucket_prefix": {"references": ["local.name_prefix"]}},
                    "module": {
                        "variables": {"bucket_prefix": {}},
                        "module_calls": {
                            "db": {
                                "source": "./db",
                                "expressions": {"prefix": {"references": ["var.bucket_prefix"]}},
                                "module": {
                                    "variables": {"prefix": {}},
                                    "resources": [
                                        {
                                            "address": "aws_s3_bucket.logs",
                                            "mode": "managed",
                                            "type": "aws_s3_bucket",
                                            "name": "logs",
                                            "expressions": {"bucket": {"references": ["var.prefix"]}},
                                        }
                                    ],
                                },
                            }
                        },
                    },
                }
            },
        }
    },
}


@pytest.fixture
def scenario_plan_dict():
    """The three-resource, two-module plan document."""
    return copy.deepcopy(SCENARIO_PLAN)


@pytest.fixture
def explicit_scenario_plan(load_plan_dict):
    """The scenario plan with dependencies declared on the change records."""
    return load_plan_dict(copy.deepcopy(EXPLICIT_SCENARIO_PLAN))


@pytest.fixture
def full_plan_dict():
    """A plan document exercising every node kind and action."""
    return copy.deepcopy(FULL_PLAN)


@pytest.fixture
def load_plan_dict():
    """Return a function turning a plan document into a Plan."""
    def load(document, limits=None):
        return PlanLoader(limits).load_bytes(json.dumps(document))
    return load


@pytest.fixture
def scenario_plan(scenario_plan_dict, load_plan_dict):
    return load_plan_dict(scenario_plan_dict)


@pytest.fixture
def full_plan(full_plan_dict, load_plan_dict):
    return load_plan_dict(full_plan_dict)


@pytest.fixture
def write_plan(tmp_path):
    """Return a function writing a plan document to a temporary file."""
    def write(document, name="plan.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path
    return write
