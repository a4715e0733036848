"""isoload test suite.

Folder taxonomy
- unit/         : Fast checks of a single module/class/function.
- integration/  : Real modules materialized through isolation contexts, real
                  archives, and the pytest plugin driven through `pytester`.
- e2e/          : The `isoload` command line driven through Click's CliRunner.
- fixtures/     : Shared fixtures (no tests here).

General guidance
- Write throwaway source trees under `tmp_path`; never import them through the
  shared interpreter unless a test is about the shared context.
- Give every throwaway module a name unique to its test so `sys.modules`
  entries cannot collide.
- Property-based tests live with the layer they exercise and use
  @pytest.mark.property.
"""
