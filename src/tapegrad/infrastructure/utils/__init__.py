from ._gradcheck import GradcheckResult, gradcheck, numerical_gradient

__all__ = ["GradcheckResult", "gradcheck", "numerical_gradient"]
