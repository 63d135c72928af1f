from fastapi import Depends, HTTPException, status
from commerce.utils.get_user import CurrentUser, get_current_user


def require_role(roles: list[str]):
    async def role_checker(user: CurrentUser = Depends(get_current_user)):
        if user.role.lower() not in [r.lower() for r in roles]:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return user
    return role_checker
