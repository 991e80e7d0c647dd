"""
Trades package — state, storage, and the per-cycle lifecycle driver.

Import submodules directly (src.trades.scanner, src.trades.evaluator); this
package stays import-light because src.engine depends on src.trades.state.
"""
