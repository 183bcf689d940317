"""
模型包初始化
在此处导入所有模型，确保 SQLAlchemy Base.metadata 能注册全部表。
init_db() 只需 import pressroom.models 即可触发所有模型注册。
"""

from pressroom.models.draft import Draft  # noqa: F401
from pressroom.models.article import Article, ArticleView, Like, Comment  # noqa: F401
from pressroom.models.quiz import Quiz, QuizAttempt  # noqa: F401
from pressroom.models.notification import Notification  # noqa: F401
from pressroom.models.profile import Profile, Follow  # noqa: F401
