# flake8: noqa
# scripts/create_admin.py

"""
SUPERADMIN 계정을 생성하거나, 이미 존재하는 계정을 SUPERADMIN으로 승격하는 CLI 스크립트입니다.

사용 예:
    python -m scripts.create_admin --email admin@example.com --name Admin
"""

import asyncio
import typer
from pydantic import ValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_async_session_context
from app.core.roles import SystemRole
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas

cli = typer.Typer()


async def create_or_promote_admin(db: AsyncSession, user_in: usr_schemas.UserCreate) -> str:
    """
    이메일로 사용자를 찾아 있으면 SUPERADMIN으로 승격하고, 없으면 새로 생성합니다.
    """
    db_user = await usr_crud.user.get_by_email(db, email=user_in.email)
    if db_user:
        if db_user.system_role == SystemRole.SUPERADMIN and db_user.is_active:
            return f"이미 SUPERADMIN 계정입니다: {db_user.email}"
        await usr_crud.user.update(
            db,
            db_obj=db_user,
            obj_in=usr_schemas.UserUpdate(system_role=SystemRole.SUPERADMIN, is_active=True),
        )
        return f"기존 계정을 SUPERADMIN으로 승격했습니다: {db_user.email}"

    db_user = await usr_crud.user.create(db, obj_in=user_in)
    return f"SUPERADMIN 계정이 성공적으로 생성되었습니다: {db_user.email} (id={db_user.id})"


@cli.command()
def main(
    email: str = typer.Option(
        ..., '--email', '-e',
        prompt="관리자 이메일을 입력하세요",
        help="생성(또는 승격)할 관리자 계정의 이메일 주소입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="관리자 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="8자 이상, 대문자/소문자/숫자/특수문자를 각각 포함해야 합니다. 기존 계정 승격 시에는 사용되지 않습니다."
    ),
    name: str = typer.Option(
        "Admin", '--name', '-n',
        help="관리자의 이름입니다."
    ),
):
    """
    WFM 애플리케이션을 위한 SUPERADMIN 계정을 생성합니다.
    """
    try:
        user_in = usr_schemas.UserCreate(
            email=email,
            name=name,
            password=password,
            system_role=SystemRole.SUPERADMIN,
        )
    except ValidationError as e:
        typer.echo(f"오류: 입력값이 올바르지 않습니다.\n{e}")
        raise typer.Exit(code=1)

    async def run_creation() -> str:
        async with get_async_session_context() as db:
            return await create_or_promote_admin(db, user_in)

    typer.echo(asyncio.run(run_creation()))


if __name__ == "__main__":
    cli()
