# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Aspect-Oriented Programming support for pyweave.

Proxies intercept calls to managed objects and run an ordered chain of
advice around them.  Use :class:`ProxyFactory` for programmatic proxies, or
register an auto-proxy creator with the bean factory to proxy beans
automatically.
"""

from pyweave.aop.adapter import (
    AdvisorAdapter,
    DefaultAdvisorAdapterRegistry,
    GlobalAdvisorAdapterRegistry,
)
from pyweave.aop.advice import (
    AfterAdvice,
    AfterReturningAdvice,
    IntroductionInterceptor,
    MethodBeforeAdvice,
    MethodInterceptor,
    ThrowsAdvice,
)
from pyweave.aop.advised import AdvisedSupport, AdvisedSupportListener, ProxyConfig, ProxyCreatorSupport
from pyweave.aop.advisor import (
    Advisor,
    DefaultIntroductionAdvisor,
    DefaultPointcutAdvisor,
    ExpressionPointcutAdvisor,
    IntroductionAdvisor,
    NameMatchMethodPointcutAdvisor,
    PointcutAdvisor,
)
from pyweave.aop.aop_context import AopContext
from pyweave.aop.auto_configuration import AopAutoConfiguration
from pyweave.aop.auto_proxy import (
    DO_NOT_PROXY,
    PROXY_WITHOUT_ADDITIONAL_INTERCEPTORS,
    AbstractAdvisorAutoProxyCreator,
    AbstractAutoProxyCreator,
    BeanNameAutoProxyCreator,
    DefaultAdvisorAutoProxyCreator,
    ProxyCreationContext,
)
from pyweave.aop.chain import DefaultAdvisorChainFactory, InterceptorAndDynamicMethodMatcher
from pyweave.aop.decorators import (
    AdviceDeclaration,
    after,
    after_returning,
    after_throwing,
    around,
    aspect,
    before,
    infrastructure,
    lazy_target,
    preserve_target_class,
)
from pyweave.aop.interceptors import DelegatingIntroductionInterceptor, ExposeInvocationInterceptor
from pyweave.aop.introspection import Method
from pyweave.aop.invocation import AsyncReflectiveMethodInvocation, ReflectiveMethodInvocation
from pyweave.aop.matchers import (
    ClassFilters,
    ComposablePointcut,
    DecoratedMethodPointcut,
    DynamicMethodMatcher,
    ExpressionPointcut,
    MethodMatchers,
    NameMatchMethodPointcut,
    Pointcuts,
    RootClassFilter,
    StaticMethodMatcher,
    StaticMethodMatcherPointcut,
    TypeClassFilter,
)
from pyweave.aop.pointcut import ClassFilter, IntroductionAwareMethodMatcher, MethodMatcher, Pointcut, matches_pointcut
from pyweave.aop.post_processor import AspectAutoProxyCreator
from pyweave.aop.proxy import AopProxy, ContractAopProxy, DefaultAopProxyFactory, ProxyFactory, SubclassAopProxy
from pyweave.aop.registry import AdviceBinding, AspectRegistry
from pyweave.aop.target import (
    EmptyTargetSource,
    HotSwappableTargetSource,
    LazyInitTargetSource,
    PrototypeTargetSource,
    SimplePoolTargetSource,
    SingletonTargetSource,
    TargetSource,
    ThreadLocalTargetSource,
)
from pyweave.aop.target_source_creators import LazyInitTargetSourceCreator, QuickTargetSourceCreator
from pyweave.aop.types import JoinPoint
from pyweave.aop.utils import ContractProxy, get_advised, get_target_class, is_aop_proxy, unwrap

__all__ = [
    "DO_NOT_PROXY",
    "PROXY_WITHOUT_ADDITIONAL_INTERCEPTORS",
    "AbstractAdvisorAutoProxyCreator",
    "AbstractAutoProxyCreator",
    "AdviceBinding",
    "AdviceDeclaration",
    "AdvisedSupport",
    "AdvisedSupportListener",
    "Advisor",
    "AdvisorAdapter",
    "AfterAdvice",
    "AfterReturningAdvice",
    "AopAutoConfiguration",
    "AopContext",
    "AopProxy",
    "AspectAutoProxyCreator",
    "AspectRegistry",
    "AsyncReflectiveMethodInvocation",
    "BeanNameAutoProxyCreator",
    "ClassFilter",
    "ClassFilters",
    "ComposablePointcut",
    "ContractAopProxy",
    "ContractProxy",
    "DecoratedMethodPointcut",
    "DefaultAdvisorAdapterRegistry",
    "DefaultAdvisorAutoProxyCreator",
    "DefaultAdvisorChainFactory",
    "DefaultAopProxyFactory",
    "DefaultIntroductionAdvisor",
    "DefaultPointcutAdvisor",
    "DelegatingIntroductionInterceptor",
    "DynamicMethodMatcher",
    "EmptyTargetSource",
    "ExposeInvocationInterceptor",
    "ExpressionPointcut",
    "ExpressionPointcutAdvisor",
    "GlobalAdvisorAdapterRegistry",
    "HotSwappableTargetSource",
    "InterceptorAndDynamicMethodMatcher",
    "IntroductionAdvisor",
    "IntroductionAwareMethodMatcher",
    "IntroductionInterceptor",
    "JoinPoint",
    "LazyInitTargetSource",
    "LazyInitTargetSourceCreator",
    "Method",
    "MethodBeforeAdvice",
    "MethodInterceptor",
    "MethodMatcher",
    "MethodMatchers",
    "NameMatchMethodPointcut",
    "NameMatchMethodPointcutAdvisor",
    "Pointcut",
    "PointcutAdvisor",
    "Pointcuts",
    "PrototypeTargetSource",
    "ProxyConfig",
    "ProxyCreationContext",
    "ProxyCreatorSupport",
    "ProxyFactory",
    "QuickTargetSourceCreator",
    "ReflectiveMethodInvocation",
    "RootClassFilter",
    "SimplePoolTargetSource",
    "SingletonTargetSource",
    "StaticMethodMatcher",
    "StaticMethodMatcherPointcut",
    "SubclassAopProxy",
    "TargetSource",
    "ThreadLocalTargetSource",
    "ThrowsAdvice",
    "TypeClassFilter",
    "after",
    "after_returning",
    "after_throwing",
    "around",
    "aspect",
    "before",
    "get_advised",
    "get_target_class",
    "infrastructure",
    "is_aop_proxy",
    "lazy_target",
    "matches_pointcut",
    "preserve_target_class",
    "unwrap",
]
