#!/usr/bin/env python3
"""
Demonstration of Chibi Dig.

This demo shows:
1. Registering functions and classes as constructors
2. Named values
3. Interface substitution with As
4. Value groups collected into lists
5. Result objects (Out) and parameter objects (In)
6. Conflict and cycle detection with rollback
7. ProvideInfo introspection
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Annotated

from chibi_dig import (
    As,
    Container,
    FillProvideInfo,
    Group,
    In,
    Name,
    Out,
    ProvideError,
    ProvideInfo,
)

# Example domain: a small web service


class Database(ABC):
    """Abstract database interface."""

    @abstractmethod
    def query(self, sql: str) -> str:
        pass


class PostgresDB(Database):
    def __init__(self, dsn: str):
        self.dsn = dsn

    def query(self, sql: str) -> str:
        return f"PostgreSQL[{self.dsn}]: {sql}"


@dataclass
class Config:
    """Application configuration."""

    app_name: str = "demo"
    primary_dsn: str = "postgres://primary/app"
    replica_dsn: str = "postgres://replica/app"


class Logger:
    def __init__(self, config: Config):
        self.config = config

    def log(self, message: str) -> None:
        print(f"[{self.config.app_name}] {message}")


class Route(ABC):
    @abstractmethod
    def path(self) -> str:
        pass


class UsersRoute(Route):
    def path(self) -> str:
        return "/users"


class HealthRoute(Route):
    def path(self) -> str:
        return "/health"


@dataclass
class Databases(Out):
    """Two connections produced by one constructor."""

    primary: Annotated[Database, Name("primary")]
    replica: Annotated[Database, Name("replica")]


def new_databases(config: Config) -> Databases:
    return Databases(PostgresDB(config.primary_dsn), PostgresDB(config.replica_dsn))


def new_users_route() -> Route:
    return UsersRoute()


def new_health_route() -> Route:
    return HealthRoute()


@dataclass
class ServerParams(In):
    logger: Logger
    replica: Annotated[Database, Name("replica")]
    routes: Annotated[list[Route], Group("routes")]


class Server:
    def __init__(self, params: ServerParams):
        self.logger = params.logger
        self.database = params.replica
        self.routes = params.routes

    def describe(self) -> str:
        paths = ", ".join(route.path() for route in self.routes)
        return f"serving {paths} backed by {self.database.query('SELECT 1')}"


def main() -> None:
    print("=== Chibi Dig Demo ===\n")

    container = Container()
    container.provide(Config)
    container.provide(Logger)
    container.provide(new_databases)
    container.provide(new_users_route, Group("routes"))
    container.provide(new_health_route, Group("routes"))

    info = ProvideInfo()
    container.provide(Server, FillProvideInfo(info))
    print(f"Server constructor #{info.id}")
    print(f"  inputs:  {', '.join(str(i) for i in info.inputs)}")
    print(f"  outputs: {', '.join(str(o) for o in info.outputs)}\n")

    def run(server: Server) -> str:
        server.logger.log("starting")
        return server.describe()

    print(container.invoke(run))

    print("\n--- Interface substitution ---")
    container.provide(UsersRoute, As(Route), Name("default"))

    def default_route(route: Annotated[Route, Name("default")]) -> str:
        return route.path()

    print(f"default route: {container.invoke(default_route)}")

    print("\n--- Conflicts are rejected, the container is unchanged ---")
    before = len(container.nodes)
    try:
        container.provide(new_databases)
    except ProvideError as e:
        print(f"✗ {e.reason}")
    print(f"registered constructors: {before} -> {len(container.nodes)}")

    print("\n--- Cycles are rejected ---")

    class Left:
        pass

    class Right:
        pass

    def new_left(right: Right) -> Left:
        return Left()

    def new_right(left: Left) -> Right:
        return Right()

    container.provide(new_left)
    try:
        container.provide(new_right)
    except ProvideError as e:
        print(f"✗ {e.reason}")

    print("\n=== Demo completed successfully! ===")


if __name__ == "__main__":
    main()
